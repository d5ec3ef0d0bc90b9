"""Discrete Bayesian networks answered by the junction tree.

Each node of a :class:`BeliefNetwork` holds a conditional probability
table (CPT) over its parents.  A query turns the network into a
:class:`~cliqueflow.models.factor_graph.FactorGraph` with one factor per
CPT, conditions it on the current evidence and hands it to a
:class:`~cliqueflow.inference.junction_tree.JunctionTree`:

* :meth:`BeliefNetwork.marginal` – prior marginal, evidence ignored.
* :meth:`BeliefNetwork.infer` – posterior marginal given the evidence.
* :meth:`BeliefNetwork.probability_of_evidence` – P(evidence).
* :meth:`BeliefNetwork.most_probable_explanation` – MAP assignment.

Only networks whose moral graph is already triangulated by the CPT
scopes can be answered; others raise
:class:`~cliqueflow.core.errors.ConstructionError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import networkx as nx
import numpy as np

from cliqueflow.core.errors import ZeroProbabilityError
from cliqueflow.factors.table import TableFactor
from cliqueflow.inference.junction_tree import JunctionTree
from cliqueflow.models.factor_graph import FactorGraph


@dataclass
class _CPT:
    """Conditional table of one node; axes are ``parents + [node]``."""

    parents: List[str]
    states: List[str]
    table: np.ndarray


class BeliefNetwork:
    """A directed graphical model over discrete variables.

    The DAG lives in a :class:`networkx.DiGraph`; the tables live on the
    graph's nodes under the ``"cpt"`` attribute.

    Parameters
    ----------
    inference : JunctionTree, optional
        Engine used for queries.  A default :class:`JunctionTree` is
        created if omitted.

    Examples
    --------
    >>> bn = BeliefNetwork()
    >>> bn.add_node("A", np.array([0.4, 0.6]), states=["a0", "a1"])
    >>> bn.add_node("B", np.array([[0.9, 0.1], [0.3, 0.7]]),
    ...             parents=["A"], states=["b0", "b1"])
    >>> bn.marginal("B")
    array([0.54, 0.46])
    """

    def __init__(self, inference: Optional[JunctionTree] = None) -> None:
        self._dag = nx.DiGraph()
        self._observed: Dict[str, int] = {}
        self.inference = inference if inference is not None else JunctionTree()

    # ------------------------------------------------------------------ #
    #  Structure
    # ------------------------------------------------------------------ #

    def add_node(
        self,
        name: str,
        distribution: np.ndarray,
        parents: Optional[List[str]] = None,
        states: Optional[List[str]] = None,
    ) -> None:
        """Add variable *name* with its CPT.

        *distribution* has one axis per parent, in the order given by
        *parents*, followed by an axis over the states of *name*.  Root
        nodes pass a 1-D prior.  State labels default to ``s0, s1, ...``.

        Raises
        ------
        ValueError
            If *name* already exists, a parent has not been added yet, or
            the table's shape, sign or state labels are inconsistent.
        """
        if name in self._dag:
            raise ValueError(f"Node '{name}' already exists")
        parents = list(parents or [])
        unknown = [p for p in parents if p not in self._dag]
        if unknown:
            raise ValueError(
                f"Parent '{unknown[0]}' must be added before child '{name}'"
            )

        table = np.asarray(distribution, dtype=np.float64)
        if table.ndim != len(parents) + 1:
            raise ValueError(
                f"Distribution for '{name}' has {table.ndim} dimensions, "
                f"expected {len(parents) + 1}"
            )
        expected = tuple(self._cardinality(p) for p in parents)
        if table.shape[:-1] != expected:
            raise ValueError(
                f"CPT shape {table.shape} does not match parent states "
                f"{expected}"
            )
        if (table < 0).any():
            raise ValueError(f"Distribution for '{name}' has negative entries")

        labels = list(states) if states is not None else [
            f"s{i}" for i in range(table.shape[-1])
        ]
        if len(labels) != table.shape[-1]:
            raise ValueError(
                f"Got {len(labels)} state labels for '{name}', which does not "
                f"match the {table.shape[-1]} states of its distribution"
            )

        self._dag.add_node(name, cpt=_CPT(parents, labels, table))
        self._dag.add_edges_from((p, name) for p in parents)

    def _cpt(self, name: str) -> _CPT:
        return self._dag.nodes[name]["cpt"]

    def _cardinality(self, name: str) -> int:
        return len(self._cpt(name).states)

    # ------------------------------------------------------------------ #
    #  Evidence
    # ------------------------------------------------------------------ #

    def observe(self, variable: str, evidence: Union[str, int]) -> None:
        """Record that *variable* is in state *evidence* (label or index).

        Raises
        ------
        ValueError
            If the variable is unknown or the state does not exist.
        """
        self._check_variable(variable)
        self._observed[variable] = self._state_index(variable, evidence)

    def _state_index(self, variable: str, evidence: Union[str, int]) -> int:
        labels = self._cpt(variable).states
        if isinstance(evidence, (int, np.integer)):
            if not 0 <= evidence < len(labels):
                raise ValueError(
                    f"State index {evidence} out of range for '{variable}'"
                )
            return int(evidence)
        if evidence not in labels:
            raise ValueError(
                f"'{evidence}' is not a valid state of '{variable}'. "
                f"Valid states: {labels}"
            )
        return labels.index(evidence)

    def clear_evidence(self) -> None:
        self._observed.clear()

    # ------------------------------------------------------------------ #
    #  Factor graph conversion
    # ------------------------------------------------------------------ #

    def to_factor_graph(self, with_evidence: bool = True) -> FactorGraph:
        """One factor per CPT, variables declared in topological order.

        With *with_evidence* the graph is conditioned on the current
        observations.
        """
        graph = FactorGraph()
        order = self.nodes
        for name in order:
            graph.add_variable(name, self._cpt(name).states)
        for name in order:
            cpt = self._cpt(name)
            scope = cpt.parents + [name]
            graph.add_factor(TableFactor(
                scope, [self._cardinality(v) for v in scope], cpt.table,
            ))
        if with_evidence and self._observed:
            graph = graph.conditional(self._observed)
        return graph

    # ------------------------------------------------------------------ #
    #  Inference
    # ------------------------------------------------------------------ #

    def marginal(self, query: str) -> np.ndarray:
        """P(*query*) with the evidence ignored."""
        self._check_variable(query)
        return self._posterior(self.to_factor_graph(with_evidence=False), query)

    def infer(self, query: str) -> np.ndarray:
        """P(*query* | evidence).

        Raises
        ------
        ZeroProbabilityError
            If the evidence is impossible under the network.
        ConstructionError
            If the CPT scopes cannot form a clique tree.
        """
        self._check_variable(query)
        return self._posterior(self.to_factor_graph(), query)

    def _posterior(self, graph: FactorGraph, query: str) -> np.ndarray:
        marginals = self.inference.compute_marginals(graph)
        return marginals.marginal(query).normalize().values_for([query])

    def probability_of_evidence(self) -> float:
        """P(evidence); 1.0 when nothing is observed, 0.0 if impossible."""
        try:
            marginals = self.inference.compute_marginals(self.to_factor_graph())
        except ZeroProbabilityError:
            return 0.0
        return marginals.partition_function

    def most_probable_explanation(self) -> Dict[str, str]:
        """State label of every variable in a most probable joint state.

        Observed variables keep their observed state.
        """
        best = self.inference.compute_max_marginals(
            self.to_factor_graph()
        ).best_assignment()
        return {
            name: self._cpt(name).states[best[name]]
            for name in self.nodes if name in best
        }

    def _check_variable(self, name: str) -> None:
        if name not in self._dag:
            raise ValueError(f"Variable '{name}' not in network")

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #

    @property
    def nodes(self) -> List[str]:
        """Variable names, parents before children."""
        return list(nx.topological_sort(self._dag))

    @property
    def edges(self) -> List[Tuple[str, str]]:
        """``(parent, child)`` pairs."""
        return list(self._dag.edges())

    @property
    def evidence(self) -> Dict[str, int]:
        """Observed state index per variable."""
        return dict(self._observed)

    def get_states(self, name: str) -> List[str]:
        return list(self._cpt(name).states)

    def __repr__(self) -> str:
        return (
            f"BeliefNetwork(nodes={self.nodes}, edges={self.edges}, "
            f"evidence={self._observed})"
        )
