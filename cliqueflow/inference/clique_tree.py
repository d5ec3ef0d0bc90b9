"""Clique trees and their construction by variable elimination.

A :class:`CliqueTree` is an arena of :class:`Clique` records addressed by
integer index.  Each record holds its own factor, the running marginal
accumulated during message passing, and dicts keyed by neighbor index for
separators and outbound messages.  The structure is a forest: one tree
per connected component of the factor graph.

:class:`CliqueTreeBuilder` produces a tree from a
:class:`~cliqueflow.models.factor_graph.FactorGraph` by repeatedly
eliminating a clique that holds a variable no other clique mentions.
Graphs that would need fill-in edges for this to succeed raise
:class:`~cliqueflow.core.errors.ConstructionError`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import networkx as nx

from cliqueflow.core.errors import ConstructionError, InvalidMessageOrderError
from cliqueflow.core.types import CliqueTreeState, SeparatorSet
from cliqueflow.factors.base import Factor
from cliqueflow.models.factor_graph import FactorGraph

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
#  Clique tree
# ------------------------------------------------------------------ #

@dataclass
class Clique:
    """A node of the clique tree.

    ``marginal`` starts out as ``factor`` and grows as neighbor messages
    are folded in; ``folded`` records which neighbors those were.
    ``separators`` and ``messages`` are keyed by neighbor index, and
    ``messages`` holds what this clique has sent.
    """

    index: int
    factor: Factor
    marginal: Factor
    folded: Set[int] = field(default_factory=set)
    separators: Dict[int, SeparatorSet] = field(default_factory=dict)
    messages: Dict[int, Factor] = field(default_factory=dict)

    @property
    def neighbors(self) -> List[int]:
        return sorted(self.separators)


class CliqueTree:
    """Cliques connected by separator sets, plus message-passing state.

    A tree is built for a single inference call and must not be reused:
    once its marginals have been extracted, any further mutation raises
    :class:`InvalidMessageOrderError`.

    Parameters
    ----------
    factors : list of Factor
        One factor per clique; clique ``i`` wraps ``factors[i]``.
    edges : list of (int, int)
        Undirected clique tree edges.
    elimination_order : list of int
        Message-passing schedule; each clique index appears once.
    """

    def __init__(
        self,
        factors: List[Factor],
        edges: Iterable[Tuple[int, int]],
        elimination_order: List[int],
    ) -> None:
        self._cliques: List[Clique] = [
            Clique(index=i, factor=f, marginal=f) for i, f in enumerate(factors)
        ]
        for a, b in edges:
            shared = frozenset(factors[a].variables) & frozenset(factors[b].variables)
            self._cliques[a].separators[b] = SeparatorSet(a, b, shared)
            self._cliques[b].separators[a] = SeparatorSet(b, a, shared)
        self._elimination_order: List[int] = list(elimination_order)
        self.state: CliqueTreeState = CliqueTreeState.BUILT

    # ----- structure ------------------------------------------------------

    def num_cliques(self) -> int:
        return len(self._cliques)

    def clique(self, index: int) -> Clique:
        return self._cliques[index]

    def factor(self, index: int) -> Factor:
        return self._cliques[index].factor

    @property
    def elimination_order(self) -> List[int]:
        return list(self._elimination_order)

    @property
    def edges(self) -> List[Tuple[int, int]]:
        """Undirected edges as ``(low, high)`` index pairs, sorted."""
        return sorted(
            (c.index, n) for c in self._cliques for n in c.separators
            if c.index < n
        )

    def neighbors(self, index: int) -> List[int]:
        return self._cliques[index].neighbors

    def separator(self, start: int, end: int) -> SeparatorSet:
        return self._cliques[start].separators[end]

    def to_networkx(self) -> nx.Graph:
        """Undirected graph of clique indices labelled with separators."""
        graph = nx.Graph()
        graph.add_nodes_from(range(self.num_cliques()))
        for a, b in self.edges:
            graph.add_edge(a, b, separator=self.separator(a, b).variables)
        return graph

    # ----- messages -------------------------------------------------------

    def message(self, start: int, end: int) -> Optional[Factor]:
        """The message sent on ``start -> end``, or None if not yet sent."""
        return self._cliques[start].messages.get(end)

    def inbound_messages(self, index: int) -> Dict[SeparatorSet, Optional[Factor]]:
        """Map each separator of *index* to the message received on it."""
        clique = self._cliques[index]
        return {
            clique.separators[n]: self._cliques[n].messages.get(index)
            for n in clique.neighbors
        }

    def outbound_neighbors(self, index: int) -> Set[int]:
        """Neighbors *index* has already sent a message to."""
        return set(self._cliques[index].messages)

    def add_message(self, start: int, end: int, message: Factor) -> None:
        self._check_mutable()
        if end in self._cliques[start].messages:
            raise InvalidMessageOrderError(
                f"Message {start} -> {end} has already been computed"
            )
        self._cliques[start].messages[end] = message

    # ----- marginals ------------------------------------------------------

    def marginal(self, index: int) -> Factor:
        return self._cliques[index].marginal

    def folded(self, index: int) -> FrozenSet[int]:
        return frozenset(self._cliques[index].folded)

    def fold_messages(self, index: int, neighbors: Iterable[int]) -> Factor:
        """Multiply the messages from *neighbors* into the running marginal.

        Returns the updated marginal.

        Raises
        ------
        InvalidMessageOrderError
            If a message from one of *neighbors* has not been sent.
        """
        self._check_mutable()
        clique = self._cliques[index]
        neighbors = sorted(neighbors)
        messages: List[Factor] = []
        for n in neighbors:
            message = self.message(n, index)
            if message is None:
                raise InvalidMessageOrderError(
                    f"Invalid message passing order! Trying to pass {n} -> {index}"
                )
            messages.append(message)
        if messages:
            clique.marginal = clique.marginal.product(messages)
            clique.folded.update(neighbors)
        return clique.marginal

    # ----- lifecycle ------------------------------------------------------

    def begin_message_passing(self) -> None:
        self._check_mutable()
        self.state = CliqueTreeState.MESSAGES_IN_PROGRESS

    def mark_extracted(self) -> None:
        self._check_mutable()
        self.state = CliqueTreeState.MARGINALS_EXTRACTED

    def _check_mutable(self) -> None:
        if self.state is CliqueTreeState.MARGINALS_EXTRACTED:
            raise InvalidMessageOrderError(
                "Marginals were already extracted from this clique tree; "
                "build a new tree for each inference call"
            )

    def __repr__(self) -> str:
        return (
            f"CliqueTree(cliques={self.num_cliques()}, edges={self.edges}, "
            f"state={self.state.value})"
        )


# ------------------------------------------------------------------ #
#  Construction
# ------------------------------------------------------------------ #

class CliqueTreeBuilder:
    """Builds a :class:`CliqueTree` by greedy variable elimination.

    Each round picks a variable that occurs in exactly one remaining
    clique ``f`` (variables are tried in declaration order) and merges
    ``f`` into a clique holding all of ``f``'s other variables.  When
    several cliques qualify, the one with the fewest non-zero entries
    wins, then the lowest index.  A clique whose variables occur nowhere
    else closes its connected component and becomes that component's
    root; no edge is added for it.

    Parameters
    ----------
    use_elimination_hint : bool
        If True and the graph carries an elimination hint, schedule
        message passing by the hint instead of the discovered order.
    """

    def __init__(self, use_elimination_hint: bool = True) -> None:
        self.use_elimination_hint = use_elimination_hint

    def build(self, graph: FactorGraph) -> CliqueTree:
        """Convert *graph* into a clique tree.

        Raises
        ------
        ConstructionError
            If the graph has no factors, cannot be simplified into a
            clique tree without fill-in, or carries a malformed hint.
        """
        factors = graph.minimal_factors()
        if not factors:
            raise ConstructionError(f"{graph!r} has no factors")

        rank = {v: i for i, v in enumerate(graph.variables)}
        # variable -> indices of remaining cliques containing it
        var_cliques: Dict[str, Set[int]] = defaultdict(set)
        for i, f in enumerate(factors):
            for v in f.variables:
                var_cliques[v].add(i)
        # occurrence count -> variables with that count
        counts: Dict[int, Set[str]] = defaultdict(set)
        for v, cliques in var_cliques.items():
            counts[len(cliques)].add(v)

        remaining: Set[int] = set(range(len(factors)))
        edges: List[Tuple[int, int]] = []
        order: List[int] = []

        while len(remaining) > 1:
            eliminated = None
            for v in sorted(counts[1], key=lambda name: rank.get(name, len(rank))):
                (f,) = var_cliques[v]
                if self._try_eliminate(f, factors, var_cliques, counts,
                                       remaining, edges):
                    eliminated = f
                    break

            if eliminated is None:
                raise ConstructionError(
                    f"Could not convert {graph!r} into a clique tree without "
                    f"fill-in. Remaining cliques: "
                    f"{[factors[i].variables for i in sorted(remaining)]}"
                )
            remaining.discard(eliminated)
            order.append(eliminated)
        order.append(remaining.pop())

        hint = graph.elimination_hint
        if self.use_elimination_hint and hint is not None:
            order = self._order_from_hint(hint, len(factors))

        logger.debug("Clique tree edges %s, elimination order %s", edges, order)
        return CliqueTree(factors, edges, order)

    @staticmethod
    def _try_eliminate(
        f: int,
        factors: List[Factor],
        var_cliques: Dict[str, Set[int]],
        counts: Dict[int, Set[str]],
        remaining: Set[int],
        edges: List[Tuple[int, int]],
    ) -> bool:
        """Merge clique *f* into a superset of its shared variables.

        Returns False, leaving all state untouched, if the shared
        variables are split across several cliques.
        """
        retained = [v for v in factors[f].variables if len(var_cliques[v]) > 1]

        if retained:
            candidates = set.intersection(*(var_cliques[v] for v in retained))
            candidates.discard(f)
            if not candidates:
                return False
            target = min(candidates, key=lambda i: (factors[i].size(), i))
            edges.append((f, target))
        else:
            # f closes its component; the lowest remaining clique takes
            # over as the merge target but no message crosses the link.
            target = min(remaining - {f})
            logger.debug("Clique %d closes its component (next: %d)", f, target)

        for v in factors[f].variables:
            count = len(var_cliques[v])
            counts[count].discard(v)
            if count > 1:
                counts[count - 1].add(v)
            var_cliques[v].discard(f)
        return True

    @staticmethod
    def _order_from_hint(hint: List[int], num_cliques: int) -> List[int]:
        if sorted(hint) != list(range(num_cliques)):
            raise ConstructionError(
                f"Elimination hint {hint} is not a permutation of "
                f"0..{num_cliques - 1}"
            )
        return sorted(range(num_cliques), key=lambda i: hint[i])
