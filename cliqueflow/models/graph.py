"""Factor graph construction utilities for CliqueFlow."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from cliqueflow.factors.table import TableFactor
from cliqueflow.models.factor_graph import FactorGraph


def _pairwise(rng: np.random.Generator, num_states: int) -> np.ndarray:
    # Each row is a random distribution over the second variable.
    table = np.empty((num_states, num_states))
    for s in range(num_states):
        table[s] = rng.dirichlet(np.ones(num_states))
    return table


def _add_variables(
    graph: FactorGraph,
    names: Sequence[str],
    num_states: int,
) -> None:
    states = [f"s{i}" for i in range(num_states)]
    for name in names:
        graph.add_variable(name, states)


def build_chain(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    prefix: str = "X",
) -> FactorGraph:
    """Build a chain ``X0 - X1 - ... - Xn-1`` of pairwise factors.

    ``X0`` also carries a random unary factor.
    """
    rng = np.random.default_rng(seed)
    graph = FactorGraph()
    names = [f"{prefix}{i}" for i in range(num_nodes)]
    _add_variables(graph, names, num_states)

    graph.add_factor(TableFactor(
        [names[0]], [num_states], rng.dirichlet(np.ones(num_states)),
    ))
    for i in range(num_nodes - 1):
        graph.add_factor(TableFactor(
            [names[i], names[i + 1]],
            [num_states, num_states],
            _pairwise(rng, num_states),
        ))
    return graph


def build_tree(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    prefix: str = "X",
) -> FactorGraph:
    """Build a balanced binary tree of pairwise factors.

    Node ``i``'s children are ``2i+1`` and ``2i+2``.
    """
    rng = np.random.default_rng(seed)
    graph = FactorGraph()
    names = [f"{prefix}{i}" for i in range(num_nodes)]
    _add_variables(graph, names, num_states)

    graph.add_factor(TableFactor(
        [names[0]], [num_states], rng.dirichlet(np.ones(num_states)),
    ))
    for i in range(num_nodes):
        for child_idx in [2 * i + 1, 2 * i + 2]:
            if child_idx < num_nodes:
                graph.add_factor(TableFactor(
                    [names[i], names[child_idx]],
                    [num_states, num_states],
                    _pairwise(rng, num_states),
                ))
    return graph


def build_cycle(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
) -> FactorGraph:
    """Build a single loop of pairwise factors.

    No variable of a loop occurs in a single factor, so the clique tree
    builder cannot eliminate anything without fill-in edges.
    """
    graph = build_chain(num_nodes, num_states=num_states, seed=seed)
    rng = np.random.default_rng(None if seed is None else seed + 1)
    graph.add_factor(TableFactor(
        [f"X{num_nodes - 1}", "X0"],
        [num_states, num_states],
        _pairwise(rng, num_states),
    ))
    return graph


def build_disconnected(
    sizes: Sequence[int],
    num_states: int = 2,
    seed: Optional[int] = None,
) -> Tuple[FactorGraph, List[FactorGraph]]:
    """Build independent chains and their union.

    Chain ``k`` uses variable names ``C{k}_0, C{k}_1, ...``.

    Returns
    -------
    (FactorGraph, list of FactorGraph)
        The combined graph and each component on its own.
    """
    rng = np.random.default_rng(seed)
    components = [
        build_chain(size, num_states=num_states,
                    seed=int(rng.integers(2**31)), prefix=f"C{k}_")
        for k, size in enumerate(sizes)
    ]
    combined = FactorGraph()
    for component in components:
        for name in component.variables:
            combined.add_variable(name, component.states(name))
    for component in components:
        for factor in component.factors:
            combined.add_factor(factor)
    return combined, components
