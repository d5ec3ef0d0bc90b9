"""Tests for cliqueflow/models/factor_graph.py and graph.py.

Covers:
- Variable and factor registration and validation
- Minimal factors
- Conditioning
- Unnormalized probabilities
- Random graph builders
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from cliqueflow.factors.table import TableFactor
from cliqueflow.models.factor_graph import FactorGraph
from cliqueflow.models.graph import build_chain, build_disconnected, build_tree


# ------------------------------------------------------------------ #
#  Construction
# ------------------------------------------------------------------ #

class TestFactorGraphConstruction:
    """Tests for add_variable / add_factor."""

    def test_add_variable_with_labels(self):
        fg = FactorGraph()
        fg.add_variable("A", ["lo", "hi"])
        assert fg.variables == ["A"]
        assert fg.states("A") == ["lo", "hi"]
        assert fg.cardinality("A") == 2

    def test_add_variable_with_count(self):
        fg = FactorGraph()
        fg.add_variable("A", 3)
        assert fg.states("A") == ["s0", "s1", "s2"]

    def test_duplicate_variable_raises(self):
        fg = FactorGraph()
        fg.add_variable("A", 2)
        with pytest.raises(ValueError, match="already exists"):
            fg.add_variable("A", 2)

    def test_variable_without_states_raises(self):
        with pytest.raises(ValueError, match="at least one state"):
            FactorGraph().add_variable("A", [])

    def test_unknown_variable_in_factor_raises(self):
        fg = FactorGraph()
        fg.add_variable("A", 2)
        with pytest.raises(ValueError, match="not in factor graph"):
            fg.add_factor(TableFactor(["A", "B"], [2, 2], np.ones((2, 2))))

    def test_cardinality_mismatch_raises(self):
        fg = FactorGraph()
        fg.add_variable("A", 3)
        with pytest.raises(ValueError, match="expected 3"):
            fg.add_factor(TableFactor(["A"], [2], np.ones(2)))

    def test_factor_on_conditioned_variable_raises(self):
        fg = FactorGraph.from_factors([TableFactor(["A"], [2], np.ones(2))])
        conditioned = fg.conditional({"A": 0})
        with pytest.raises(ValueError, match="already conditioned"):
            conditioned.add_factor(TableFactor(["A"], [2], np.ones(2)))

    def test_from_factors_declaration_order(self):
        fg = FactorGraph.from_factors([
            TableFactor(["B", "A"], [2, 3], np.ones((2, 3))),
            TableFactor(["A", "C"], [3, 2], np.ones((3, 2))),
        ])
        assert fg.variables == ["B", "A", "C"]
        assert fg.variable_index("C") == 2
        assert fg.cardinality("A") == 3


# ------------------------------------------------------------------ #
#  Minimal factors
# ------------------------------------------------------------------ #

class TestMinimalFactors:
    """Subset factors are merged into a covering factor."""

    def test_unary_merged_into_pairwise(self):
        fg = FactorGraph.from_factors([
            TableFactor(["A"], [2], np.array([2.0, 3.0])),
            TableFactor(["A", "B"], [2, 2], np.ones((2, 2))),
        ])
        minimal = fg.minimal_factors()
        assert len(minimal) == 1
        np.testing.assert_allclose(
            minimal[0].values_for(["A", "B"]), [[2.0, 2.0], [3.0, 3.0]]
        )

    def test_duplicate_scopes_merged(self):
        fg = FactorGraph.from_factors([
            TableFactor(["A", "B"], [2, 2], np.full((2, 2), 2.0)),
            TableFactor(["B", "A"], [2, 2], np.full((2, 2), 3.0)),
        ])
        minimal = fg.minimal_factors()
        assert len(minimal) == 1
        assert minimal[0].total_weight() == pytest.approx(24.0)

    def test_insertion_order_kept(self):
        fg = FactorGraph.from_factors([
            TableFactor(["A", "B"], [2, 2], np.ones((2, 2))),
            TableFactor(["B", "C", "D"], [2, 2, 2], np.ones((2, 2, 2))),
            TableFactor(["D", "E"], [2, 2], np.ones((2, 2))),
        ])
        assert [f.variables for f in fg.minimal_factors()] == [
            ["A", "B"], ["B", "C", "D"], ["D", "E"],
        ]

    def test_uncovered_variable_gets_uniform_factor(self):
        fg = FactorGraph()
        fg.add_variable("A", 2)
        fg.add_variable("B", 3)
        fg.add_variable("C", 2)
        fg.add_factor(TableFactor(["A", "C"], [2, 2], np.ones((2, 2))))
        minimal = fg.minimal_factors()
        assert [f.variables for f in minimal] == [["A", "C"], ["B"]]
        np.testing.assert_allclose(minimal[1].values_for(["B"]), [1.0, 1.0, 1.0])

    def test_conditioned_variable_not_covered(self):
        fg = FactorGraph.from_factors([
            TableFactor(["A", "B"], [2, 2], np.ones((2, 2))),
        ]).conditional({"A": 0, "B": 1})
        assert fg.minimal_factors()[0].variables == []
        assert len(fg.minimal_factors()) == 1

    def test_minimal_preserves_probability(self):
        fg = build_tree(6, num_states=3, seed=0)
        merged = FactorGraph.from_factors(fg.minimal_factors())
        assignment = {v: i % 3 for i, v in enumerate(fg.variables)}
        assert merged.get_unnormalized_probability(assignment) == pytest.approx(
            fg.get_unnormalized_probability(assignment)
        )


# ------------------------------------------------------------------ #
#  Conditioning and probabilities
# ------------------------------------------------------------------ #

class TestFactorGraphConditioning:
    """Tests for conditional() and the probability queries."""

    def _graph(self) -> FactorGraph:
        return FactorGraph.from_factors([
            TableFactor(["A", "B"], [2, 2], np.array([[2.0, 1.0], [1.0, 2.0]])),
            TableFactor(["B", "C"], [2, 2], np.array([[1.0, 1.0], [1.0, 3.0]])),
        ])

    def test_conditional_removes_variables(self):
        conditioned = self._graph().conditional({"B": 1})
        assert conditioned.variables == ["A", "C"]
        assert conditioned.conditioned_values == {"B": 1}
        assert [f.variables for f in conditioned.factors] == [["A"], ["C"]]

    def test_conditional_unknown_variable(self):
        with pytest.raises(ValueError, match="not in factor graph"):
            self._graph().conditional({"Z": 0})

    def test_conditional_twice_raises(self):
        conditioned = self._graph().conditional({"B": 1})
        with pytest.raises(ValueError, match="already conditioned"):
            conditioned.conditional({"B": 0})

    def test_unnormalized_probability(self):
        fg = self._graph()
        assert fg.get_unnormalized_probability(
            {"A": 1, "B": 1, "C": 1}
        ) == pytest.approx(6.0)
        assert fg.get_unnormalized_log_probability(
            {"A": 0, "B": 1, "C": 0}
        ) == pytest.approx(0.0)

    def test_zero_probability(self):
        fg = FactorGraph.from_factors([TableFactor(["A"], [2], np.array([0.0, 1.0]))])
        assert fg.get_unnormalized_log_probability({"A": 0}) == -math.inf
        assert fg.get_unnormalized_probability({"A": 0}) == 0.0

    def test_with_elimination_hint_copies(self):
        fg = self._graph()
        hinted = fg.with_elimination_hint([1, 0])
        assert hinted.elimination_hint == [1, 0]
        assert fg.elimination_hint is None


# ------------------------------------------------------------------ #
#  Builders
# ------------------------------------------------------------------ #

class TestGraphBuilders:
    """Tests for the random graph builders."""

    def test_chain(self):
        fg = build_chain(5, num_states=3, seed=0)
        assert fg.variables == ["X0", "X1", "X2", "X3", "X4"]
        assert len(fg.factors) == 5
        assert fg.cardinality("X2") == 3

    def test_chain_seeded(self):
        a = build_chain(4, seed=42)
        b = build_chain(4, seed=42)
        for fa, fb in zip(a.factors, b.factors):
            np.testing.assert_array_equal(fa.values, fb.values)

    def test_tree(self):
        fg = build_tree(7, seed=0)
        scopes = [f.variables for f in fg.factors]
        assert ["X0", "X1"] in scopes
        assert ["X2", "X6"] in scopes
        assert len(fg.connected_components()) == 1

    def test_disconnected(self):
        combined, components = build_disconnected([2, 3], seed=0)
        assert len(components) == 2
        assert combined.variables == ["C0_0", "C0_1", "C1_0", "C1_1", "C1_2"]
        assert len(combined.connected_components()) == 2
