"""Junction tree inference for CliqueFlow."""

from cliqueflow.inference.clique_tree import Clique, CliqueTree, CliqueTreeBuilder
from cliqueflow.inference.marginals import (
    FactorMarginalSet,
    FactorMaxMarginalSet,
    MarginalExtractor,
    MarginalSet,
    MaxMarginalSet,
)
from cliqueflow.inference.message_passing import MessagePassingScheduler
from cliqueflow.inference.junction_tree import JunctionTree

__all__ = [
    "Clique",
    "CliqueTree",
    "CliqueTreeBuilder",
    "FactorMarginalSet",
    "FactorMaxMarginalSet",
    "JunctionTree",
    "MarginalExtractor",
    "MarginalSet",
    "MaxMarginalSet",
    "MessagePassingScheduler",
]
