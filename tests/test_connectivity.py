"""Tests for traffic classification and component counting."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from tracegraph.aggregator import Edge
from tracegraph.connectivity import (
    TrafficClass,
    classify,
    count_components,
    mark_circular,
    pair_key,
)


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize("group", ["orders", "billing", "a"])
    def test_same_group(self, group):
        """Test classifying a same-group edge."""
        assert classify(group, group) == TrafficClass.SAME_GROUP

    def test_cross_group(self):
        """Test classifying a cross-group edge."""
        assert classify("orders", "billing") == TrafficClass.CROSS_GROUP

    @pytest.mark.parametrize("group", [None, "", "orders"])
    def test_missing_source_group_is_unknown(self, group):
        """Test a missing source group."""
        assert classify(None, group) == TrafficClass.UNKNOWN_GROUP

    def test_missing_target_group_is_unknown(self):
        """Test a missing target group."""
        assert classify("orders", None) == TrafficClass.UNKNOWN_GROUP
        assert classify("orders", "") == TrafficClass.UNKNOWN_GROUP


class TestPairKey:
    """Tests for unordered pair keys."""

    def test_order_independent(self):
        """Test that pair keys ignore direction."""
        assert pair_key("a", "b") == pair_key("b", "a") == ("a", "b")


class TestMarkCircular:
    """Tests for circular pair detection."""

    def test_bidirectional_pair_marked(self):
        """Test flagging both directions of a pair."""
        edges = [
            Edge(id="1", source="a", target="b"),
            Edge(id="2", source="b", target="a"),
            Edge(id="3", source="b", target="c"),
        ]
        mark_circular(edges)

        assert [e.is_circular for e in edges] == [True, True, False]

    def test_self_loop_not_circular(self):
        """Test that self-loops are not circular."""
        edges = [Edge(id="1", source="a", target="a")]
        mark_circular(edges)
        assert edges[0].is_circular is False

    def test_stale_flag_cleared(self):
        """Test clearing a stale circular flag."""
        edge = Edge(id="1", source="a", target="b", is_circular=True)
        mark_circular([edge])
        assert edge.is_circular is False


class TestCountComponents:
    """Tests for count_components."""

    def test_empty_graph(self, make_graph):
        """Test an empty graph has no components."""
        graph = make_graph([], [])
        assert count_components(graph.nodes, graph.edges) == 0

    def test_two_disjoint_triangles(self, make_graph):
        """Test two separate triangles."""
        graph = make_graph(
            ["a", "b", "c", "d", "e", "f"],
            [("a", "b"), ("b", "c"), ("c", "a"), ("d", "e"), ("e", "f"), ("f", "d")],
        )
        assert count_components(graph.nodes, graph.edges) == 2

    def test_accepts_graph(self, make_graph):
        """Test counting from a Graph directly."""
        graph = make_graph(["a", "b", "c"], [("a", "b")])
        assert count_components(graph) == count_components(graph.nodes, graph.edges) == 2

    def test_star_of_five(self, make_graph):
        """Test a star is one component."""
        graph = make_graph(
            ["hub", "s1", "s2", "s3", "s4"],
            [("hub", "s1"), ("s2", "hub"), ("hub", "s3"), ("s4", "hub")],
        )
        assert count_components(graph.nodes, graph.edges) == 1

    def test_direction_ignored(self, make_graph):
        """Test that edge direction is ignored."""
        graph = make_graph(["a", "b", "c"], [("a", "b"), ("c", "b")])
        assert count_components(graph.nodes, graph.edges) == 1

    def test_isolated_nodes_count(self, make_graph):
        """Test isolated nodes counting as components."""
        graph = make_graph(["a", "b", "c"], [("a", "b")])
        assert count_components(graph.nodes, graph.edges) == 2

    def test_dangling_edges_ignored(self, make_graph):
        """Test edges to unknown nodes."""
        graph = make_graph(["a", "b"], [("a", "ghost")])
        assert count_components(graph.nodes, graph.edges) == 2

    def test_long_chain_does_not_recurse(self, make_graph):
        """Test a long chain without hitting the recursion limit."""
        ids = [f"n{i}" for i in range(5000)]
        pairs = list(zip(ids, ids[1:]))
        graph = make_graph(ids, pairs)
        assert count_components(graph.nodes, graph.edges) == 1
