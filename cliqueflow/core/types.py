"""Core types shared by factors, factor graphs and the junction tree."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

# Assignment of discrete variables to state indices.
Assignment = Dict[str, int]


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

@dataclass
class Variable:
    """A discrete random variable with a finite set of states."""

    name: str
    states: List[str]

    @property
    def num_states(self) -> int:
        return len(self.states)


# ---------------------------------------------------------------------------
# Clique tree types
# ---------------------------------------------------------------------------

class InferenceMode(enum.Enum):
    """Semiring used during message passing."""

    SUM_PRODUCT = "sum_product"
    MAX_PRODUCT = "max_product"


class CliqueTreeState(enum.Enum):
    """Lifecycle of a :class:`~cliqueflow.inference.clique_tree.CliqueTree`."""

    BUILT = "built"
    MESSAGES_IN_PROGRESS = "messages_in_progress"
    MARGINALS_EXTRACTED = "marginals_extracted"


@dataclass(frozen=True, eq=False)
class SeparatorSet:
    """Edge between two adjacent cliques.

    ``start`` and ``end`` give the direction a message travels, but the
    identity of the edge is the unordered pair, so ``SeparatorSet(0, 1, v)``
    and ``SeparatorSet(1, 0, v)`` compare equal and hash alike.
    ``variables`` are the variables kept when a message crosses the edge.
    """

    start: int
    end: int
    variables: FrozenSet[str] = field(default_factory=frozenset)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SeparatorSet):
            return NotImplemented
        return self.endpoints == other.endpoints

    def __hash__(self) -> int:
        return hash(self.endpoints)

    @property
    def endpoints(self) -> FrozenSet[int]:
        return frozenset((self.start, self.end))

    def reversed(self) -> SeparatorSet:
        """Return the same edge pointing the other way."""
        return SeparatorSet(self.end, self.start, self.variables)
