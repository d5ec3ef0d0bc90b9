"""Exact marginals and max-marginals with the junction tree algorithm.

This implementation assumes that input factor graphs are easily
simplified into a junction tree, i.e. that variable elimination can be
performed without introducing cliques that are not already in the
model.  Tree-structured graphs with small factors, and essentially every
model where exact inference is tractable, fall into this class.  Other
graphs raise :class:`~cliqueflow.core.errors.ConstructionError`.

Example
-------
>>> from cliqueflow import FactorGraph, JunctionTree, TableFactor
>>> fg = FactorGraph.from_factors([
...     TableFactor(["A", "B"], [2, 2], np.array([[2.0, 1.0], [1.0, 2.0]])),
...     TableFactor(["B", "C"], [2, 2], np.array([[1.0, 1.0], [1.0, 3.0]])),
... ])
>>> round(JunctionTree().compute_marginals(fg).partition_function, 6)
18.0
"""

from __future__ import annotations

from typing import Dict, Optional

from cliqueflow.core.errors import ZeroProbabilityError
from cliqueflow.core.log import LogFunction, NullLogFunction
from cliqueflow.core.types import InferenceMode
from cliqueflow.inference.clique_tree import CliqueTreeBuilder
from cliqueflow.inference.marginals import (
    FactorMarginalSet,
    FactorMaxMarginalSet,
    MarginalExtractor,
    MarginalSet,
    MaxMarginalSet,
)
from cliqueflow.inference.message_passing import MessagePassingScheduler
from cliqueflow.models.factor_graph import FactorGraph


class JunctionTree:
    """Computes marginals and max-marginals of a :class:`FactorGraph`.

    A fresh clique tree is built for every call, so one instance may be
    reused for any number of sequential queries.

    Parameters
    ----------
    log_function : LogFunction, optional
        Receives timers and statistics.  Defaults to
        :class:`~cliqueflow.core.log.NullLogFunction`.
    use_elimination_hint : bool
        Whether to honour a graph's elimination-order hint.
    """

    def __init__(
        self,
        log_function: Optional[LogFunction] = None,
        use_elimination_hint: bool = True,
    ) -> None:
        self.log_function = log_function if log_function is not None else NullLogFunction()
        self.builder = CliqueTreeBuilder(use_elimination_hint=use_elimination_hint)

    def compute_marginals(self, graph: FactorGraph) -> MarginalSet:
        """Return the (unnormalized) marginals and partition function.

        Raises
        ------
        ConstructionError
            If the graph cannot be turned into a clique tree.
        ZeroProbabilityError
            If the conditioned evidence has zero probability.
        """
        conditioned = graph.conditioned_values
        cards = _conditioned_cardinalities(graph)

        # Efficiency overrides.
        if not graph.variables:
            # Every variable is observed; only the partition function remains.
            return FactorMarginalSet(
                [], graph.get_unnormalized_log_probability({}),
                conditioned, cards,
            )
        factors = graph.factors
        if _covers_graph(factors, graph):
            # The only factor is already its own marginal.
            log_z = factors[0].total_log_weight()
            if log_z == float("-inf"):
                raise ZeroProbabilityError()
            return FactorMarginalSet(factors, log_z, conditioned, cards)

        log = self.log_function
        log.start_timer("inference/build_clique_tree")
        tree = self.builder.build(graph)
        log.stop_timer("inference/build_clique_tree")

        log.start_timer("inference/message_passing")
        roots = MessagePassingScheduler(InferenceMode.SUM_PRODUCT).run(tree)
        log.stop_timer("inference/message_passing")

        log.start_timer("inference/build_marginals")
        marginals = MarginalExtractor(InferenceMode.SUM_PRODUCT).extract(
            tree, roots, conditioned, cards,
        )
        log.stop_timer("inference/build_marginals")

        log.log_statistic("inference/num_cliques", tree.num_cliques())
        log.log_statistic("inference/num_roots", len(roots))
        return marginals

    def compute_max_marginals(self, graph: FactorGraph) -> MaxMarginalSet:
        """Return unnormalized max-marginals, one per clique.

        No partition function is computed and zero-probability evidence
        is not detected; decoding an assignment is left to the caller
        (see :meth:`MaxMarginalSet.best_assignment`).

        Raises
        ------
        ConstructionError
            If the graph cannot be turned into a clique tree.
        """
        conditioned = graph.conditioned_values
        if not graph.variables:
            return FactorMaxMarginalSet([], conditioned)
        factors = graph.factors
        if _covers_graph(factors, graph):
            return FactorMaxMarginalSet(factors, conditioned)

        log = self.log_function
        log.start_timer("inference/build_clique_tree")
        tree = self.builder.build(graph)
        log.stop_timer("inference/build_clique_tree")

        log.start_timer("inference/message_passing")
        roots = MessagePassingScheduler(InferenceMode.MAX_PRODUCT).run(tree)
        log.stop_timer("inference/message_passing")

        log.start_timer("inference/build_max_marginals")
        max_marginals = MarginalExtractor(InferenceMode.MAX_PRODUCT).extract(
            tree, roots, conditioned,
        )
        log.stop_timer("inference/build_max_marginals")

        log.log_statistic("inference/num_cliques", tree.num_cliques())
        log.log_statistic("inference/num_roots", len(roots))
        return max_marginals


def _covers_graph(factors, graph: FactorGraph) -> bool:
    """True for a single factor over every free variable."""
    return len(factors) == 1 and set(factors[0].variables) == set(graph.variables)


def _conditioned_cardinalities(graph: FactorGraph) -> Dict[str, int]:
    return {v: graph.cardinality(v) for v in graph.conditioned_values}
