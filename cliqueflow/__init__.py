"""CliqueFlow: exact inference on discrete factor graphs.

This package computes marginals, max-marginals and partition functions
of discrete factor graphs with the junction tree algorithm.  It provides
dense table factors, a factor graph container, the clique tree builder
and message-passing scheduler, and a Bayesian network front end.
"""

try:
    from cliqueflow._version import version as __version__
except ImportError:
    __version__ = "0.1.0"

from .core.errors import (
    ConstructionError,
    InferenceError,
    InvalidMessageOrderError,
    ZeroProbabilityError,
)
from .core.log import DefaultLogFunction, LogFunction, NullLogFunction
from .core.types import InferenceMode, SeparatorSet, Variable
from .factors import Factor, LogTableFactor, TableFactor
from .models import BeliefNetwork, FactorGraph
from .inference import JunctionTree, MarginalSet, MaxMarginalSet

__all__ = [
    "BeliefNetwork",
    "ConstructionError",
    "DefaultLogFunction",
    "Factor",
    "FactorGraph",
    "InferenceError",
    "InferenceMode",
    "InvalidMessageOrderError",
    "JunctionTree",
    "LogFunction",
    "LogTableFactor",
    "MarginalSet",
    "MaxMarginalSet",
    "NullLogFunction",
    "SeparatorSet",
    "TableFactor",
    "Variable",
    "ZeroProbabilityError",
]
