"""Exceptions raised by CliqueFlow inference."""


class InferenceError(Exception):
    """Base class for all inference errors."""


class ConstructionError(InferenceError, ValueError):
    """The factor graph cannot be reduced to a clique tree.

    Raised when direct variable elimination would require fill-in edges,
    i.e. the graph's treewidth exceeds what the clique tree builder
    supports, or when a supplied elimination hint is malformed.
    """


class InvalidMessageOrderError(InferenceError, RuntimeError):
    """A message that the schedule guarantees to exist is missing.

    Also raised when a clique tree is mutated after its marginals have
    been extracted.  Either case indicates a scheduling bug.
    """


class ZeroProbabilityError(InferenceError, ArithmeticError):
    """The conditioned evidence has zero probability under the model."""

    def __init__(self, message: str = "Evidence has zero probability") -> None:
        super().__init__(message)
