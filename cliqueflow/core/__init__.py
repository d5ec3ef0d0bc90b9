"""Core module for CliqueFlow.

This module contains the shared types, the exception hierarchy and the
instrumentation hooks used throughout the package.
"""

from .errors import (
    ConstructionError,
    InferenceError,
    InvalidMessageOrderError,
    ZeroProbabilityError,
)
from .log import DefaultLogFunction, LogFunction, NullLogFunction
from .types import (
    Assignment,
    CliqueTreeState,
    InferenceMode,
    SeparatorSet,
    Variable,
)

__all__ = [
    "Assignment",
    "CliqueTreeState",
    "ConstructionError",
    "DefaultLogFunction",
    "InferenceError",
    "InferenceMode",
    "InvalidMessageOrderError",
    "LogFunction",
    "NullLogFunction",
    "SeparatorSet",
    "Variable",
    "ZeroProbabilityError",
]
