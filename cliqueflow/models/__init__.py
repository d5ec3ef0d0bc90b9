"""Factor graphs and the models built on top of them."""

from cliqueflow.models.factor_graph import FactorGraph
from cliqueflow.models.graph import (
    build_chain,
    build_cycle,
    build_disconnected,
    build_tree,
)
from cliqueflow.models.bayes_net import BeliefNetwork

__all__ = [
    "BeliefNetwork",
    "FactorGraph",
    "build_chain",
    "build_cycle",
    "build_disconnected",
    "build_tree",
]
