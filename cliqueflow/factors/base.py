"""The capability interface every factor variant implements.

The junction tree only talks to factors through :class:`Factor`; it never
inspects which concrete variant it holds.  Variants live in
:mod:`cliqueflow.factors.table`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional, Sequence, Set, Union

import numpy as np

from cliqueflow.core.types import Assignment, SeparatorSet


class Factor(ABC):
    """A non-negative weight function over a set of discrete variables.

    Attributes:
        variables: Variable names, one per axis.
        cardinalities: Number of states of each variable.
    """

    variables: List[str]
    cardinalities: List[int]

    # ----- arithmetic -----------------------------------------------------

    def product(
        self,
        other: Union["Factor", Iterable["Factor"], float],
    ) -> "Factor":
        """Multiply this factor by another factor, a list of factors, or a
        non-negative scalar.  Returns a new factor; ``self`` is unchanged.
        """
        if isinstance(other, (int, float, np.number)):
            return self._scale(float(other))
        if isinstance(other, Factor):
            return self._product_factor(other)
        result: Factor = self
        for factor in other:
            result = result._product_factor(factor)
        return result

    @abstractmethod
    def _product_factor(self, other: "Factor") -> "Factor":
        pass

    @abstractmethod
    def _scale(self, constant: float) -> "Factor":
        pass

    def scale_log(self, log_constant: float) -> "Factor":
        """Multiply every weight by ``exp(log_constant)``."""
        return self._scale(math.exp(log_constant))

    @abstractmethod
    def marginalize(self, variables: Union[str, Iterable[str]]) -> "Factor":
        """Sum *variables* out of this factor."""
        pass

    @abstractmethod
    def max_marginalize(self, variables: Union[str, Iterable[str]]) -> "Factor":
        """Maximize *variables* out of this factor."""
        pass

    @abstractmethod
    def invert(self) -> "Factor":
        """Elementwise inverse.  Zero weights stay zero."""
        pass

    @abstractmethod
    def conditional(self, assignment: Assignment) -> "Factor":
        """Restrict the factor to *assignment*, dropping assigned variables.

        Entries of *assignment* for variables outside this factor are
        ignored.
        """
        pass

    @abstractmethod
    def normalize(self) -> "Factor":
        pass

    # ----- queries --------------------------------------------------------

    @abstractmethod
    def get_unnormalized_probability(self, assignment: Assignment) -> float:
        """Weight of *assignment*, which must cover every variable."""
        pass

    def get_unnormalized_log_probability(self, assignment: Assignment) -> float:
        weight = self.get_unnormalized_probability(assignment)
        return math.log(weight) if weight > 0 else -math.inf

    @abstractmethod
    def total_weight(self) -> float:
        """Sum of the weights of every assignment."""
        pass

    def total_log_weight(self) -> float:
        total = self.total_weight()
        return math.log(total) if total > 0 else -math.inf

    @abstractmethod
    def size(self) -> int:
        """Number of assignments with non-zero weight."""
        pass

    @abstractmethod
    def values_for(self, variables: Sequence[str]) -> np.ndarray:
        """Return the weights with axes in the order given by *variables*."""
        pass

    @abstractmethod
    def argmax(self) -> Assignment:
        """Return a highest-weight assignment."""
        pass

    def cardinality(self, variable: str) -> int:
        return self.cardinalities[self._axis(variable)]

    def _axis(self, variable: str) -> int:
        try:
            return self.variables.index(variable)
        except ValueError:
            raise ValueError(f"Variable '{variable}' not in factor") from None

    # ----- message passing ------------------------------------------------

    def computable_outbound_messages(
        self,
        inbound: Mapping[SeparatorSet, Optional["Factor"]],
    ) -> Set[SeparatorSet]:
        """Return the separators this factor can send a message on.

        *inbound* maps each separator adjacent to this factor to the
        message received on it, or ``None`` if none has arrived.  With a
        single message missing, the message toward that neighbor can be
        computed.  With none missing, every message can be (re)computed.
        Otherwise nothing can be sent yet.
        """
        missing = {sep for sep, message in inbound.items() if message is None}
        if len(missing) == 1:
            return missing
        if not missing:
            return set(inbound)
        return set()


def to_variable_list(variables: Union[str, Iterable[str]]) -> List[str]:
    """Accept a single variable name or an iterable of names."""
    if isinstance(variables, str):
        return [variables]
    return list(variables)


def assignment_key(assignment: Assignment, variables: Sequence[str]) -> tuple:
    """Index tuple for *assignment* in the axis order of *variables*."""
    missing = [v for v in variables if v not in assignment]
    if missing:
        raise ValueError(f"Assignment is missing variables {missing}")
    return tuple(int(assignment[v]) for v in variables)

