"""Dense table factors.

Provides:

* :class:`TableFactor` – weights stored directly in a numpy array.
* :class:`LogTableFactor` – log-weights, for models whose products
  would underflow in probability space.

Both share axis alignment through :class:`DenseFactor`.  Multiplying
factors of different variants converts the right operand into the
left operand's representation.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Iterable, List, Sequence, Union

import numpy as np
from scipy.special import logsumexp

from cliqueflow.core.types import Assignment
from cliqueflow.factors.base import Factor, assignment_key, to_variable_list


class DenseFactor(Factor):
    """A factor backed by an N-dimensional array.

    Parameters
    ----------
    variables : list of str
        Variable names that index the axes of *data*.
    cardinalities : list of int
        Number of states for each variable (same order as *variables*).
    data : numpy.ndarray
        Array whose shape equals *cardinalities*.  Interpreted as weights
        or log-weights depending on the subclass.
    """

    def __init__(
        self,
        variables: Sequence[str],
        cardinalities: Sequence[int],
        data: np.ndarray,
    ) -> None:
        data = np.asarray(data, dtype=np.float64)
        expected = tuple(int(c) for c in cardinalities)
        if len(variables) != len(expected):
            raise ValueError(
                f"Got {len(variables)} variables but "
                f"{len(expected)} cardinalities"
            )
        if len(set(variables)) != len(variables):
            raise ValueError(f"Duplicate variables in {list(variables)}")
        if data.shape != expected:
            raise ValueError(
                f"{type(self).__name__} shape {data.shape} does not match "
                f"cardinalities {expected}"
            )
        self.variables: List[str] = list(variables)
        self.cardinalities: List[int] = list(expected)
        self._data: np.ndarray = data

    # ----- representation hooks ------------------------------------------

    def _new(self, variables, cardinalities, data) -> "DenseFactor":
        return type(self)(variables, cardinalities, data)

    @abstractmethod
    def _coerce(self, other: Factor) -> "DenseFactor":
        """Convert *other* into this variant's representation."""
        pass

    @abstractmethod
    def _combine(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def _sum(self, data: np.ndarray, axes: tuple) -> np.ndarray:
        pass

    @abstractmethod
    def _weights(self) -> np.ndarray:
        """Weights in probability space."""
        pass

    # ----- core operations ------------------------------------------------

    def _product_factor(self, other: Factor) -> "DenseFactor":
        other = self._coerce(other)
        combined_vars: List[str] = list(self.variables)
        combined_cards: List[int] = list(self.cardinalities)
        for v, c in zip(other.variables, other.cardinalities):
            if v in combined_vars:
                if combined_cards[combined_vars.index(v)] != c:
                    raise ValueError(
                        f"Variable '{v}' has cardinality "
                        f"{combined_cards[combined_vars.index(v)]} in one "
                        f"factor and {c} in the other"
                    )
            else:
                combined_vars.append(v)
                combined_cards.append(c)

        a = self._broadcast_into(combined_vars)
        b = other._broadcast_into(combined_vars)
        return self._new(combined_vars, combined_cards, self._combine(a, b))

    def marginalize(self, variables: Union[str, Iterable[str]]) -> "DenseFactor":
        return self._eliminate(variables, self._sum)

    def max_marginalize(self, variables: Union[str, Iterable[str]]) -> "DenseFactor":
        return self._eliminate(
            variables, lambda data, axes: np.max(data, axis=axes)
        )

    def _eliminate(self, variables, reduce_fn) -> "DenseFactor":
        to_remove = to_variable_list(variables)
        axes = tuple(sorted({self._axis(v) for v in to_remove}))
        if not axes:
            return self._new(self.variables, self.cardinalities, self._data.copy())
        new_vars = [v for i, v in enumerate(self.variables) if i not in axes]
        new_cards = [c for i, c in enumerate(self.cardinalities) if i not in axes]
        return self._new(new_vars, new_cards, reduce_fn(self._data, axes))

    def conditional(self, assignment: Assignment) -> "DenseFactor":
        slices: List[Union[slice, int]] = [slice(None)] * len(self.variables)
        for i, v in enumerate(self.variables):
            if v in assignment:
                state = int(assignment[v])
                if not 0 <= state < self.cardinalities[i]:
                    raise ValueError(
                        f"State {state} out of range for variable '{v}' "
                        f"with {self.cardinalities[i]} states"
                    )
                slices[i] = state
        new_vars = [v for v in self.variables if v not in assignment]
        new_cards = [c for v, c in zip(self.variables, self.cardinalities)
                     if v not in assignment]
        return self._new(new_vars, new_cards, np.array(self._data[tuple(slices)]))

    def get_unnormalized_probability(self, assignment: Assignment) -> float:
        return float(self._weights()[assignment_key(assignment, self.variables)])

    def total_weight(self) -> float:
        return float(self._weights().sum())

    def size(self) -> int:
        return int(np.count_nonzero(self._weights()))

    def values_for(self, variables: Sequence[str]) -> np.ndarray:
        if sorted(variables) != sorted(self.variables):
            raise ValueError(
                f"Requested order {list(variables)} does not match "
                f"factor variables {self.variables}"
            )
        axes = [self.variables.index(v) for v in variables]
        return np.transpose(self._weights(), axes)

    def argmax(self) -> Assignment:
        index = np.unravel_index(int(np.argmax(self._data)), self._data.shape)
        return {v: int(i) for v, i in zip(self.variables, index)}

    # ----- helpers --------------------------------------------------------

    def _broadcast_into(self, target_vars: List[str]) -> np.ndarray:
        """Reshape data so axes align with *target_vars* (size-1 for missing)."""
        src_axes = [self.variables.index(tv) for tv in target_vars
                    if tv in self.variables]
        extra_axes = [i for i, tv in enumerate(target_vars)
                      if tv not in self.variables]

        transposed = np.transpose(self._data, src_axes)
        for ea in extra_axes:
            transposed = np.expand_dims(transposed, axis=ea)
        return transposed

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(variables={self.variables}, "
            f"shape={self._data.shape})"
        )


class TableFactor(DenseFactor):
    """A factor whose weights are stored directly.

    Examples
    --------
    >>> f = TableFactor(["A", "B"], [2, 2], np.array([[2.0, 1.0], [1.0, 2.0]]))
    >>> f.marginalize("B").values
    array([3., 3.])
    """

    @property
    def values(self) -> np.ndarray:
        return self._data

    @property
    def log_values(self) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return np.log(self._data)

    @classmethod
    def uniform(cls, variables: Sequence[str], cardinalities: Sequence[int]) -> "TableFactor":
        return cls(variables, cardinalities, np.ones(tuple(cardinalities)))

    @classmethod
    def indicator(
        cls,
        variables: Sequence[str],
        cardinalities: Sequence[int],
        assignment: Assignment,
    ) -> "TableFactor":
        """Point mass of weight 1 on *assignment*."""
        values = np.zeros(tuple(cardinalities))
        values[assignment_key(assignment, variables)] = 1.0
        return cls(variables, cardinalities, values)

    def _coerce(self, other: Factor) -> "TableFactor":
        if isinstance(other, TableFactor):
            return other
        return TableFactor(
            other.variables, other.cardinalities, other.values_for(other.variables)
        )

    def _combine(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a * b

    def _sum(self, data: np.ndarray, axes: tuple) -> np.ndarray:
        return data.sum(axis=axes)

    def _weights(self) -> np.ndarray:
        return self._data

    def _scale(self, constant: float) -> "TableFactor":
        return TableFactor(self.variables, self.cardinalities, self._data * constant)

    def invert(self) -> "TableFactor":
        inverse = np.zeros_like(self._data)
        np.divide(1.0, self._data, out=inverse, where=self._data != 0)
        return TableFactor(self.variables, self.cardinalities, inverse)

    def normalize(self) -> "TableFactor":
        """Return a copy normalized so that all entries sum to 1."""
        total = self._data.sum()
        if total > 0:
            return TableFactor(self.variables, self.cardinalities, self._data / total)
        return TableFactor(self.variables, self.cardinalities, self._data.copy())

    def to_log_table(self) -> "LogTableFactor":
        return LogTableFactor(self.variables, self.cardinalities, self.log_values)


class LogTableFactor(DenseFactor):
    """A factor storing log-weights; ``-inf`` encodes a zero weight."""

    @property
    def log_values(self) -> np.ndarray:
        return self._data

    @property
    def values(self) -> np.ndarray:
        return np.exp(self._data)

    def _coerce(self, other: Factor) -> "LogTableFactor":
        if isinstance(other, LogTableFactor):
            return other
        with np.errstate(divide="ignore"):
            log_values = np.log(other.values_for(other.variables))
        return LogTableFactor(other.variables, other.cardinalities, log_values)

    def _combine(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a + b

    def _sum(self, data: np.ndarray, axes: tuple) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return logsumexp(data, axis=axes)

    def _weights(self) -> np.ndarray:
        return np.exp(self._data)

    def _scale(self, constant: float) -> "LogTableFactor":
        with np.errstate(divide="ignore"):
            return LogTableFactor(
                self.variables, self.cardinalities, self._data + np.log(constant)
            )

    def scale_log(self, log_constant: float) -> "LogTableFactor":
        return LogTableFactor(
            self.variables, self.cardinalities, self._data + log_constant
        )

    def invert(self) -> "LogTableFactor":
        inverse = np.where(np.isneginf(self._data), -np.inf, -self._data)
        return LogTableFactor(self.variables, self.cardinalities, inverse)

    def normalize(self) -> "LogTableFactor":
        total = self.total_log_weight()
        if np.isfinite(total):
            return LogTableFactor(self.variables, self.cardinalities, self._data - total)
        return LogTableFactor(self.variables, self.cardinalities, self._data.copy())

    def get_unnormalized_log_probability(self, assignment: Assignment) -> float:
        return float(self._data[assignment_key(assignment, self.variables)])

    def total_log_weight(self) -> float:
        with np.errstate(divide="ignore"):
            return float(logsumexp(self._data))
