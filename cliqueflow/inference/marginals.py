"""Marginal sets and their extraction from a clique tree.

* :class:`MarginalSet` / :class:`FactorMarginalSet` – unnormalized
  marginals plus the partition function.
* :class:`MaxMarginalSet` / :class:`FactorMaxMarginalSet` – unnormalized
  per-clique max-marginals.
* :class:`MarginalExtractor` – folds the remaining messages into every
  clique once message passing has finished.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

import networkx as nx

from cliqueflow.core.errors import InvalidMessageOrderError, ZeroProbabilityError
from cliqueflow.core.types import Assignment, InferenceMode
from cliqueflow.factors.base import Factor, to_variable_list
from cliqueflow.factors.table import TableFactor
from cliqueflow.inference.clique_tree import CliqueTree


# ------------------------------------------------------------------ #
#  Result types
# ------------------------------------------------------------------ #

class MarginalSet(ABC):
    """Conditional marginal distributions over a set of variables.

    The marginals are conditioned on :attr:`conditioned_values` and are
    unnormalized; :attr:`partition_function` is the constant that turns
    them into probabilities.
    """

    @property
    @abstractmethod
    def variables(self) -> List[str]:
        """Every variable covered, including conditioned ones."""
        pass

    @property
    @abstractmethod
    def conditioned_values(self) -> Assignment:
        pass

    @abstractmethod
    def marginal(self, variables: Union[str, Iterable[str]]) -> Factor:
        """Unnormalized marginal over *variables* as a :class:`Factor`."""
        pass

    @property
    @abstractmethod
    def log_partition_function(self) -> float:
        pass

    @abstractmethod
    def add_conditional_variables(
        self,
        values: Assignment,
        cardinalities: Mapping[str, int],
    ) -> "MarginalSet":
        """Return a copy that also treats *values* as observed.

        Used to reattach variables that were conditioned out of the graph
        before inference.  The marginals themselves are unchanged.
        """
        pass

    @property
    def partition_function(self) -> float:
        return math.exp(self.log_partition_function)


class FactorMarginalSet(MarginalSet):
    """A :class:`MarginalSet` backed by per-clique marginal factors.

    Parameters
    ----------
    factors : list of Factor
        Marginals, each over a subset of the free variables.
    log_partition_function : float
        Log of the total unnormalized probability mass.
    conditioned_values : dict of str -> int
        Observed variables and their state indices.
    conditioned_cardinalities : dict of str -> int, optional
        Number of states of each observed variable, needed to return
        marginals that include observed variables.
    """

    def __init__(
        self,
        factors: Sequence[Factor],
        log_partition_function: float,
        conditioned_values: Optional[Assignment] = None,
        conditioned_cardinalities: Optional[Dict[str, int]] = None,
    ) -> None:
        self.factors: List[Factor] = list(factors)
        self._log_partition_function = float(log_partition_function)
        self._conditioned: Dict[str, int] = dict(conditioned_values or {})
        self._conditioned_cards: Dict[str, int] = dict(conditioned_cardinalities or {})

    @property
    def variables(self) -> List[str]:
        seen: List[str] = []
        for factor in self.factors:
            seen.extend(v for v in factor.variables if v not in seen)
        seen.extend(v for v in self._conditioned if v not in seen)
        return seen

    @property
    def conditioned_values(self) -> Assignment:
        return dict(self._conditioned)

    @property
    def log_partition_function(self) -> float:
        return self._log_partition_function

    def marginal(self, variables: Union[str, Iterable[str]]) -> Factor:
        """Unnormalized marginal over *variables*.

        The marginal comes from the smallest clique containing every
        requested free variable (ties go to the lowest index).  Observed
        variables contribute a point mass at their observed state.

        Raises
        ------
        ValueError
            If no single clique covers the requested free variables, or an
            observed variable's cardinality is unknown.
        """
        requested = to_variable_list(variables)
        free = [v for v in requested if v not in self._conditioned]
        observed = [v for v in requested if v in self._conditioned]

        if free:
            covering = [f for f in self.factors if set(free) <= set(f.variables)]
            if not covering:
                raise ValueError(f"No marginal contains all of {free}")
            source = min(covering, key=lambda f: len(f.variables))
            result = source.marginalize(
                [v for v in source.variables if v not in free]
            )
        else:
            result = TableFactor([], [], self.partition_function)

        if observed:
            missing = [v for v in observed if v not in self._conditioned_cards]
            if missing:
                raise ValueError(f"Cardinality unknown for observed {missing}")
            cards = [self._conditioned_cards[v] for v in observed]
            result = result.product(TableFactor.indicator(
                observed, cards, {v: self._conditioned[v] for v in observed},
            ))
        return result

    def add_conditional_variables(
        self,
        values: Assignment,
        cardinalities: Mapping[str, int],
    ) -> "FactorMarginalSet":
        """Copy of this set with *values* added to the conditioned values.

        Raises
        ------
        ValueError
            If a variable is already covered, has no cardinality, or its
            state is out of range.
        """
        covered = set(self.variables)
        conditioned = dict(self._conditioned)
        cards = dict(self._conditioned_cards)
        for name, state in values.items():
            if name in covered:
                raise ValueError(f"Variable '{name}' is already in the marginal set")
            if name not in cardinalities:
                raise ValueError(f"Cardinality unknown for observed '{name}'")
            if not 0 <= state < cardinalities[name]:
                raise ValueError(
                    f"State {state} out of range for '{name}' with "
                    f"{cardinalities[name]} states"
                )
            conditioned[name] = int(state)
            cards[name] = int(cardinalities[name])
        return FactorMarginalSet(
            self.factors, self._log_partition_function, conditioned, cards,
        )

        return result

    def __repr__(self) -> str:
        return (
            f"FactorMarginalSet(factors={len(self.factors)}, "
            f"log_partition_function={self._log_partition_function:.6g})"
        )


class MaxMarginalSet(ABC):
    """Unnormalized max-marginals, one factor per clique."""

    @property
    @abstractmethod
    def marginals(self) -> List[Factor]:
        pass

    @property
    @abstractmethod
    def conditioned_values(self) -> Assignment:
        pass

    @abstractmethod
    def best_assignment(self) -> Assignment:
        """A maximum-weight assignment, including conditioned values."""
        pass


class FactorMaxMarginalSet(MaxMarginalSet):
    """A :class:`MaxMarginalSet` backed by per-clique factors.

    *traceback_order* lists factor indices so that every factor after the
    first in its tree shares with the earlier ones only its separator to
    its parent.  Any depth-first preorder of the clique tree has this
    property.
    """

    def __init__(
        self,
        factors: Sequence[Factor],
        conditioned_values: Optional[Assignment] = None,
        traceback_order: Optional[Sequence[int]] = None,
    ) -> None:
        self._factors: List[Factor] = list(factors)
        self._conditioned: Dict[str, int] = dict(conditioned_values or {})
        if traceback_order is None:
            traceback_order = range(len(self._factors))
        self._traceback_order: List[int] = list(traceback_order)

    @property
    def marginals(self) -> List[Factor]:
        return list(self._factors)

    @property
    def conditioned_values(self) -> Assignment:
        return dict(self._conditioned)

    def best_assignment(self) -> Assignment:
        assignment: Dict[str, int] = dict(self._conditioned)
        for index in self._traceback_order:
            factor = self._factors[index]
            fixed = {v: assignment[v] for v in factor.variables if v in assignment}
            rest = factor.conditional(fixed)
            if rest.variables:
                assignment.update(rest.argmax())
        return assignment

    def __repr__(self) -> str:
        return f"FactorMaxMarginalSet(factors={len(self._factors)})"


# ------------------------------------------------------------------ #
#  Extraction
# ------------------------------------------------------------------ #

class MarginalExtractor:
    """Turns a clique tree whose messages have been passed into results.

    Parameters
    ----------
    mode : InferenceMode
        Must match the mode message passing ran in.
    """

    def __init__(self, mode: InferenceMode = InferenceMode.SUM_PRODUCT) -> None:
        self.mode = mode

    @staticmethod
    def compute_marginal(tree: CliqueTree, index: int) -> Factor:
        """Fold every outstanding neighbor message into clique *index*.

        Raises
        ------
        InvalidMessageOrderError
            If a neighbor has not sent its message.
        """
        folded = tree.folded(index)
        return tree.fold_messages(
            index, [n for n in tree.neighbors(index) if n not in folded]
        )

    @staticmethod
    def traceback_order(tree: CliqueTree, roots: Set[int]) -> List[int]:
        """Depth-first preorder of each component, starting at its root.

        Components are visited by lowest clique index.  A component
        without a root starts at its lowest clique.
        """
        graph = tree.to_networkx()
        order: List[int] = []
        for component in sorted(nx.connected_components(graph), key=min):
            start = min(component & roots, default=min(component))
            order.extend(nx.dfs_preorder_nodes(graph, start))
        return order

    def extract(
        self,
        tree: CliqueTree,
        roots: Set[int],
        conditioned_values: Optional[Assignment] = None,
        conditioned_cardinalities: Optional[Dict[str, int]] = None,
    ) -> Union[FactorMarginalSet, FactorMaxMarginalSet]:
        """Build the marginal set for *tree*.

        In sum-product mode the log partition function is the sum, over
        the *roots*, of each root marginal's log total weight.  When the
        tree has several components, each component's marginals are
        rescaled so that every marginal sums to the full partition
        function.

        Raises
        ------
        ZeroProbabilityError
            In sum-product mode, if the partition function is zero.
        """
        marginals = [self.compute_marginal(tree, i)
                     for i in range(tree.num_cliques())]
        tree.mark_extracted()

        if self.mode is InferenceMode.MAX_PRODUCT:
            return FactorMaxMarginalSet(
                marginals, conditioned_values,
                traceback_order=self.traceback_order(tree, roots),
            )

        if not roots:
            raise InvalidMessageOrderError("Message passing found no root clique")
        log_partition_function = 0.0
        for root in sorted(roots):
            log_partition_function += marginals[root].total_log_weight()
        if log_partition_function == -math.inf:
            raise ZeroProbabilityError()

        if len(roots) > 1:
            for component in nx.connected_components(tree.to_networkx()):
                root = min(component & roots)
                offset = log_partition_function - marginals[root].total_log_weight()
                for i in component:
                    marginals[i] = marginals[i].scale_log(offset)

        return FactorMarginalSet(
            marginals, log_partition_function,
            conditioned_values, conditioned_cardinalities,
        )
