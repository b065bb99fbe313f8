"""Tests for the Edge Curve Router."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from tracegraph.routing import MAX_OFFSET, EdgeCurveRouter, EdgeGeometry, fan_offsets


class TestFanOffsets:
    """Tests for fan_offsets."""

    def test_single_edge_straight(self):
        """Test a single edge gets no offset."""
        assert fan_offsets(1) == [0.0]

    def test_two_edges_symmetric(self):
        """Test two offsets mirror each other."""
        offsets = fan_offsets(2)
        assert offsets == [50.0, -50.0]

    def test_three_edges_one_on_axis(self):
        """Test an odd count keeps a straight middle edge."""
        offsets = fan_offsets(3)
        assert offsets.count(0.0) == 1
        assert offsets[1] == 0.0
        assert offsets[0] == -offsets[2] == pytest.approx(MAX_OFFSET / 2)

    def test_four_edges_no_axis(self):
        """Test an even count has no straight edge."""
        offsets = fan_offsets(4)
        assert 0.0 not in offsets
        assert offsets == [50.0, 25.0, -25.0, -50.0]

    def test_five_edges(self):
        """Test offsets for five edges."""
        offsets = fan_offsets(5, max_offset=60)
        assert offsets == [40.0, 20.0, 0.0, -20.0, -40.0]

    def test_zero_edges(self):
        """Test offsets for no edges."""
        assert fan_offsets(0) == []

    @pytest.mark.parametrize("count", range(2, 9))
    def test_sum_is_zero(self, count):
        """Test offsets balancing around the axis."""
        assert sum(fan_offsets(count)) == pytest.approx(0)


class TestEdgeGeometry:
    """Tests for EdgeGeometry paths."""

    def test_straight_path(self):
        """Test a straight SVG path."""
        geometry = EdgeGeometry(0, 0, 10, 0)
        assert not geometry.is_curved
        assert geometry.path == "M0,0 L10,0"

    def test_curved_path(self):
        """Test a quadratic SVG path."""
        geometry = EdgeGeometry(0, 0, 10, 0, control_x=5, control_y=20)
        assert geometry.is_curved
        assert geometry.path == "M0,0 Q5,20 10,0"


class TestRoute:
    """Tests for EdgeCurveRouter.route."""

    def test_single_edge_straight(self, make_graph):
        """Test routing a lone edge straight."""
        graph = make_graph(["a", "b"], [("a", "b")], positions={"a": (0, 0), "b": (100, 0)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        edge = graph.edges[0]
        assert edge.curve_offset == 0
        assert edge.geometry == EdgeGeometry(0, 0, 100, 0)
        assert edge.is_circular is False

    def test_two_parallel_edges_opposite_offsets(self, make_graph):
        """Test two parallel edges curving apart."""
        graph = make_graph(["a", "b"], [("a", "b"), ("a", "b")],
                           positions={"a": (0, 0), "b": (200, 0)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        first, second = graph.edges
        assert abs(first.curve_offset) == abs(second.curve_offset) == 50
        assert first.curve_offset == -second.curve_offset
        assert (first.geometry.control_x, first.geometry.control_y) == (100, 50)
        assert (second.geometry.control_x, second.geometry.control_y) == (100, -50)

    def test_three_parallel_edges_one_straight(self, make_graph):
        """Test three parallel edges."""
        graph = make_graph(["a", "b"], [("a", "b")] * 3, positions={"a": (0, 0), "b": (200, 0)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        offsets = [e.curve_offset for e in graph.edges]
        assert offsets.count(0) == 1
        straight = [e for e in graph.edges if e.curve_offset == 0][0]
        assert not straight.geometry.is_curved

    def test_circular_pair_marked_and_separated(self, make_graph):
        """Test a bidirectional pair curving apart."""
        graph = make_graph(["a", "b"], [("a", "b"), ("b", "a")],
                           positions={"a": (0, 0), "b": (200, 0)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        forward, reverse = graph.edges
        assert forward.is_circular and reverse.is_circular
        # Opposite directions flip the perpendicular, so the second curve
        # collides with the first and is mirrored to the other side
        gap = math.hypot(
            forward.geometry.control_x - reverse.geometry.control_x,
            forward.geometry.control_y - reverse.geometry.control_y,
        )
        assert gap == pytest.approx(100)

    def test_collision_between_unrelated_pairs_mirrors_later_edge(self, make_graph):
        """Test mirroring a curve that collides with another pair."""
        # Two pairs with the same midpoint; their first curves would land together
        positions = {"a": (0, 0), "b": (200, 0), "c": (0, 10), "d": (200, -10)}
        graph = make_graph(["a", "b", "c", "d"],
                           [("a", "b"), ("a", "b"), ("c", "d"), ("c", "d")],
                           positions=positions)
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        controls = [(e.geometry.control_x, e.geometry.control_y) for e in graph.edges]
        assert graph.edges[0].curve_offset == 50
        assert graph.edges[1].curve_offset == -50
        # Both c-d curves collide with a-b curves; mirrored ones stay flagged
        assert graph.edges[2].curve_offset == -50
        assert graph.edges[3].curve_offset == 50
        assert len(controls) == 4

    def test_custom_threshold_disables_mirroring(self, make_graph):
        """Test a zero separation threshold."""
        graph = make_graph(["a", "b"], [("a", "b"), ("b", "a")],
                           positions={"a": (0, 0), "b": (200, 0)})
        EdgeCurveRouter(min_separation=0).route(graph.nodes, graph.edges)

        forward, reverse = graph.edges
        assert forward.curve_offset == 50
        assert reverse.curve_offset == -50
        assert (forward.geometry.control_x, forward.geometry.control_y) == \
            pytest.approx((reverse.geometry.control_x, reverse.geometry.control_y))

    def test_zero_length_edges_are_straight(self, make_graph):
        """Test edges between coincident nodes."""
        graph = make_graph(["a", "b"], [("a", "b"), ("a", "b")],
                           positions={"a": (50, 50), "b": (50, 50)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)

        for edge in graph.edges:
            assert edge.curve_offset != 0
            assert edge.geometry == EdgeGeometry(50, 50, 50, 50)
            assert not edge.geometry.is_curved

    def test_unpositioned_endpoints_have_no_geometry(self, make_graph):
        """Test edges with missing endpoints."""
        graph = make_graph(["a", "b"], [("a", "b"), ("a", "ghost")], positions={"a": (0, 0)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)
        assert all(edge.geometry is None for edge in graph.edges)

    def test_empty_graph(self):
        """Test routing nothing."""
        assert EdgeCurveRouter().route([], []) == []

    def test_control_point_perpendicular(self, make_graph):
        """Test control points perpendicular to the edge."""
        graph = make_graph(["a", "b"], [("a", "b"), ("a", "b")],
                           positions={"a": (0, 0), "b": (0, 100)})
        EdgeCurveRouter().route(graph.nodes, graph.edges)
        first = graph.edges[0].geometry
        assert (first.control_x, first.control_y) == (pytest.approx(-50), pytest.approx(50))
