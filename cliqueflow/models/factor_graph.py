"""Factor graphs over discrete variables.

A :class:`FactorGraph` is an immutable-by-convention snapshot handed to
the junction tree: it supplies the free variables, the factors, the
values of any conditioned (observed) variables and an optional
elimination-order hint.  :meth:`FactorGraph.conditional` returns a new
graph rather than modifying the receiver.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

import networkx as nx

from cliqueflow.core.types import Assignment, Variable
from cliqueflow.factors.base import Factor
from cliqueflow.factors.table import TableFactor


class FactorGraph:
    """A set of discrete variables plus factors over subsets of them.

    Examples
    --------
    >>> fg = FactorGraph()
    >>> fg.add_variable("A", ["a0", "a1"])
    >>> fg.add_variable("B", 2)
    >>> fg.add_factor(TableFactor(["A", "B"], [2, 2], np.ones((2, 2))))
    >>> fg.variables
    ['A', 'B']
    """

    def __init__(self) -> None:
        # name -> Variable, in declaration order
        self._variables: OrderedDict[str, Variable] = OrderedDict()
        self._factors: List[Factor] = []
        # name -> observed state index
        self._conditioned: Dict[str, int] = {}
        self._elimination_hint: Optional[List[int]] = None

    @classmethod
    def from_factors(cls, factors: Iterable[Factor]) -> "FactorGraph":
        """Build a graph whose variables are those mentioned by *factors*.

        States are labelled ``s0, s1, ...``.
        """
        graph = cls()
        factors = list(factors)
        for factor in factors:
            for v, c in zip(factor.variables, factor.cardinalities):
                if v not in graph._variables:
                    graph.add_variable(v, c)
        for factor in factors:
            graph.add_factor(factor)
        return graph

    # ------------------------------------------------------------------ #
    #  Construction
    # ------------------------------------------------------------------ #

    def add_variable(self, name: str, states: Union[int, Sequence[str]]) -> None:
        """Declare a variable.

        Parameters
        ----------
        name : str
            Unique variable name.
        states : int or list of str
            State labels, or the number of states (labelled ``s0, ...``).

        Raises
        ------
        ValueError
            If *name* already exists or has no states.
        """
        if name in self._variables:
            raise ValueError(f"Variable '{name}' already exists")
        if isinstance(states, int):
            states = [f"s{i}" for i in range(states)]
        if len(states) == 0:
            raise ValueError(f"Variable '{name}' must have at least one state")
        self._variables[name] = Variable(name=name, states=list(states))

    def add_factor(self, factor: Factor) -> None:
        """Add a factor over already-declared, unconditioned variables.

        Raises
        ------
        ValueError
            If the factor mentions an unknown or conditioned variable, or a
            cardinality disagrees with the declared number of states.
        """
        for v, c in zip(factor.variables, factor.cardinalities):
            if v not in self._variables:
                raise ValueError(f"Variable '{v}' not in factor graph")
            if v in self._conditioned:
                raise ValueError(f"Variable '{v}' is already conditioned on")
            if self._variables[v].num_states != c:
                raise ValueError(
                    f"Factor has cardinality {c} for '{v}', expected "
                    f"{self._variables[v].num_states}"
                )
        self._factors.append(factor)

    def with_elimination_hint(self, order: Sequence[int]) -> "FactorGraph":
        """Return a copy whose clique tree is scheduled by *order*.

        ``order[i]`` is the elimination position of the ``i``-th factor
        returned by :meth:`minimal_factors`.
        """
        graph = self._copy()
        graph._elimination_hint = [int(i) for i in order]
        return graph

    def conditional(self, assignment: Assignment) -> "FactorGraph":
        """Return a new graph conditioned on *assignment*.

        Every factor is restricted to the observed values and the observed
        variables stop being free.  Any elimination hint is dropped, since
        conditioning can change the minimal factors it refers to.

        Raises
        ------
        ValueError
            If a variable is unknown, already conditioned, or the state
            index is out of range.
        """
        for name, state in assignment.items():
            if name not in self._variables:
                raise ValueError(f"Variable '{name}' not in factor graph")
            if name in self._conditioned:
                raise ValueError(f"Variable '{name}' is already conditioned on")
            num_states = self._variables[name].num_states
            if not 0 <= int(state) < num_states:
                raise ValueError(
                    f"State {state} out of range for variable '{name}' "
                    f"with {num_states} states"
                )

        graph = self._copy()
        graph._elimination_hint = None
        graph._conditioned.update({k: int(v) for k, v in assignment.items()})
        graph._factors = [f.conditional(assignment) for f in self._factors]
        return graph

    def _copy(self) -> "FactorGraph":
        graph = FactorGraph()
        graph._variables = OrderedDict(self._variables)
        graph._factors = list(self._factors)
        graph._conditioned = dict(self._conditioned)
        graph._elimination_hint = (
            list(self._elimination_hint)
            if self._elimination_hint is not None else None
        )
        return graph

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #

    @property
    def variables(self) -> List[str]:
        """Free (unconditioned) variables in declaration order."""
        return [v for v in self._variables if v not in self._conditioned]

    @property
    def factors(self) -> List[Factor]:
        return list(self._factors)

    @property
    def conditioned_values(self) -> Dict[str, int]:
        return dict(self._conditioned)

    @property
    def elimination_hint(self) -> Optional[List[int]]:
        if self._elimination_hint is None:
            return None
        return list(self._elimination_hint)

    def states(self, name: str) -> List[str]:
        return list(self._variables[name].states)

    def cardinality(self, name: str) -> int:
        return self._variables[name].num_states

    def variable_index(self, name: str) -> int:
        """Position of *name* in declaration order."""
        return list(self._variables).index(name)

    def minimal_factors(self) -> List[Factor]:
        """Merge away factors whose variables are covered by another factor.

        Factors are visited largest first (ties by insertion order).  A
        factor whose variable set is a subset of an already kept factor is
        multiplied into the first such factor; the rest are kept.  The
        kept factors are returned in insertion order, followed by a uniform
        factor for each free variable no factor mentions.
        """
        order = sorted(range(len(self._factors)),
                       key=lambda i: -len(self._factors[i].variables))
        kept: List[int] = []
        absorbed: Dict[int, List[int]] = {}
        for i in order:
            var_set = set(self._factors[i].variables)
            for k in kept:
                if var_set <= set(self._factors[k].variables):
                    absorbed[k].append(i)
                    break
            else:
                kept.append(i)
                absorbed[i] = []

        minimal: List[Factor] = []
        for k in sorted(kept):
            factor = self._factors[k]
            if absorbed[k]:
                factor = factor.product(
                    [self._factors[j] for j in sorted(absorbed[k])]
                )
            minimal.append(factor)

        covered = {v for f in self._factors for v in f.variables}
        for name in self.variables:
            if name not in covered:
                minimal.append(TableFactor.uniform([name], [self.cardinality(name)]))
        return minimal

    def get_unnormalized_log_probability(self, assignment: Assignment) -> float:
        """Sum of factor log-weights at *assignment*.

        *assignment* must cover every free variable that appears in a
        factor; conditioned variables are already folded into the factors.
        """
        total = 0.0
        for factor in self._factors:
            sub = {v: assignment[v] for v in factor.variables if v in assignment}
            total += factor.get_unnormalized_log_probability(sub)
            if total == -math.inf:
                break
        return total

    def get_unnormalized_probability(self, assignment: Assignment) -> float:
        return math.exp(self.get_unnormalized_log_probability(assignment))

    def connected_components(self) -> List[Set[str]]:
        """Groups of free variables linked through shared factors.

        Components are ordered by the declaration order of their first
        variable.
        """
        graph = nx.Graph()
        graph.add_nodes_from(self.variables)
        for i, factor in enumerate(self._factors):
            graph.add_node(("factor", i))
            for v in factor.variables:
                graph.add_edge(("factor", i), v)

        free = self.variables
        components = []
        for component in nx.connected_components(graph):
            names = {n for n in component if isinstance(n, str)}
            if names:
                components.append(names)
        components.sort(key=lambda c: min(free.index(v) for v in c))
        return components

    def __repr__(self) -> str:
        return (
            f"FactorGraph(variables={self.variables}, "
            f"factors={len(self._factors)}, "
            f"conditioned={self._conditioned})"
        )
