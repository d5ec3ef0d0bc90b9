"""Example usage of the CliqueFlow package.

This example demonstrates the core features of the CliqueFlow package including:
- Building factor graphs from table factors
- Computing marginals and the partition function
- Conditioning on evidence and max-product decoding
- Querying a Bayesian network
- Collecting timing statistics with a log function
"""

import logging

import numpy as np

from cliqueflow import (
    BeliefNetwork,
    DefaultLogFunction,
    FactorGraph,
    JunctionTree,
    TableFactor,
    ZeroProbabilityError,
)
from cliqueflow.models import build_disconnected


def chain_example():
    """Demonstrate marginals on a three-variable chain."""
    print("=" * 60)
    print("Chain A - B - C Example")
    print("=" * 60)

    graph = FactorGraph.from_factors([
        TableFactor(["A", "B"], [2, 2], np.array([[2.0, 1.0], [1.0, 2.0]])),
        TableFactor(["B", "C"], [2, 2], np.array([[1.0, 1.0], [1.0, 3.0]])),
    ])
    marginals = JunctionTree().compute_marginals(graph)
    print(f"\n   Partition function: {marginals.partition_function:.4f}")
    for name in ["A", "B", "C"]:
        p = marginals.marginal(name).normalize().values_for([name])
        print(f"   P({name}): {p}")


def evidence_example():
    """Demonstrate conditioning and max-product decoding."""
    print("\n" + "=" * 60)
    print("Evidence and MAP Example")
    print("=" * 60)

    graph = FactorGraph.from_factors([
        TableFactor(["A", "B"], [2, 2], np.array([[2.0, 1.0], [1.0, 2.0]])),
        TableFactor(["B", "C"], [2, 2], np.array([[1.0, 1.0], [1.0, 3.0]])),
    ])
    conditioned = graph.conditional({"C": 1})
    engine = JunctionTree()

    marginals = engine.compute_marginals(conditioned)
    print(f"\n   Z(C=1): {marginals.partition_function:.4f}")
    print(f"   P(B | C=1): "
          f"{marginals.marginal('B').normalize().values_for(['B'])}")

    best = engine.compute_max_marginals(conditioned).best_assignment()
    print(f"   Best assignment given C=1: {best}")

    impossible = FactorGraph.from_factors([
        TableFactor(["A", "B"], [2, 2], np.array([[1.0, 0.0], [0.0, 1.0]])),
        TableFactor(["B", "C"], [2, 2], np.array([[1.0, 0.0], [0.0, 1.0]])),
    ]).conditional({"A": 0, "C": 1})
    try:
        engine.compute_marginals(impossible)
    except ZeroProbabilityError as exc:
        print(f"   Impossible evidence: {exc}")


def disconnected_example():
    """Demonstrate a factor graph with independent components."""
    print("\n" + "=" * 60)
    print("Disconnected Graph Example")
    print("=" * 60)

    combined, components = build_disconnected([3, 4], seed=7)
    engine = JunctionTree()
    total = engine.compute_marginals(combined).log_partition_function
    parts = [engine.compute_marginals(c).log_partition_function
             for c in components]
    print(f"\n   log Z (combined):       {total:.6f}")
    print(f"   sum of component log Z: {sum(parts):.6f}")


def belief_network_example():
    """Demonstrate the Bayesian network front end."""
    print("\n" + "=" * 60)
    print("Belief Network Example")
    print("=" * 60)

    bn = BeliefNetwork()
    bn.add_node("Cancer", np.array([0.99, 0.01]), states=["no", "yes"])
    bn.add_node(
        "Test",
        np.array([[0.95, 0.05], [0.10, 0.90]]),
        parents=["Cancer"],
        states=["negative", "positive"],
    )
    print(f"\n   P(Cancer): {bn.marginal('Cancer')}")
    bn.observe("Test", "positive")
    print(f"   P(Cancer | positive): {bn.infer('Cancer')}")
    print(f"   P(positive): {bn.probability_of_evidence():.4f}")
    print(f"   MPE: {bn.most_probable_explanation()}")


def timing_example():
    """Demonstrate collecting timers through a log function."""
    print("\n" + "=" * 60)
    print("Timing Statistics Example")
    print("=" * 60)

    log_function = DefaultLogFunction()
    engine = JunctionTree(log_function=log_function)
    combined, _ = build_disconnected([10, 10, 10], num_states=3, seed=1)
    for _ in range(5):
        engine.compute_marginals(combined)
    print()
    log_function.log_time_statistics()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="   %(message)s")

    print("\n" + "=" * 60)
    print("CliqueFlow Package Examples")
    print("=" * 60)

    chain_example()
    evidence_example()
    disconnected_example()
    belief_network_example()
    timing_example()

    print("\n" + "=" * 60)
    print("Examples completed successfully!")
    print("=" * 60 + "\n")
