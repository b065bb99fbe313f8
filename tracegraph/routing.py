"""
Edge Curve Router

Assigns curve offsets so parallel edges between one node pair fan out
symmetrically, marks circular pairs, and mirrors curves whose control
points would land too close to an already placed curve.
"""

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .connectivity import mark_circular, pair_key

if TYPE_CHECKING:
    from .aggregator import Edge, Node

logger = logging.getLogger(__name__)

MAX_OFFSET = 50.0
MIN_SEPARATION = 40.0


@dataclass
class EdgeGeometry:
    """Drawable geometry of one edge."""
    x1: float
    y1: float
    x2: float
    y2: float
    control_x: Optional[float] = None
    control_y: Optional[float] = None

    @property
    def is_curved(self) -> bool:
        return self.control_x is not None and self.control_y is not None

    @property
    def path(self) -> str:
        """SVG path data: quadratic curve or straight segment."""
        if self.is_curved:
            return f"M{self.x1},{self.y1} Q{self.control_x},{self.control_y} {self.x2},{self.y2}"
        return f"M{self.x1},{self.y1} L{self.x2},{self.y2}"


def fan_offsets(count: int, max_offset: float = MAX_OFFSET) -> List[float]:
    """Symmetric curve offsets for `count` edges sharing one node pair.

    Even counts leave the direct axis empty; odd counts put the middle
    edge on it. Offsets are ordered from the top curve to the bottom one.
    """
    if count <= 1:
        return [0.0] * max(count, 0)

    half = count // 2
    step = max_offset / math.ceil(count / 2)
    offsets: List[float] = []

    if count % 2 == 0:
        for index in range(count):
            if index < half:
                offsets.append(step * (half - index))
            else:
                offsets.append(-step * (index - half + 1))
    else:
        for index in range(count):
            if index == half:
                offsets.append(0.0)
            elif index < half:
                offsets.append(step * (half - index))
            else:
                offsets.append(-step * (index - half))

    return offsets


class EdgeCurveRouter:
    """Computes curve offsets and geometry for graph edges."""

    def __init__(self, max_offset: float = MAX_OFFSET, min_separation: float = MIN_SEPARATION):
        self.max_offset = max_offset
        self.min_separation = min_separation

    def route(self, nodes: List["Node"], edges: List["Edge"]) -> List["Edge"]:
        """Full routing pass over every edge.

        Marks circular pairs, then assigns offsets and geometry pair by pair
        with one collision set shared across the whole pass.
        """
        mark_circular(edges)
        self.route_subset(nodes, edges)
        logger.debug("Routed %d edges", len(edges))
        return edges

    def route_subset(self, nodes: List["Node"], edges: List["Edge"]) -> List["Edge"]:
        """Offsets and geometry for the given edges with a fresh collision set.

        The collision check is single-pass: whichever edge comes later in
        the processing order is the one that mirrors.
        """
        index = {node.id: node for node in nodes}
        groups: Dict[Tuple[str, str], List["Edge"]] = {}
        for edge in edges:
            groups.setdefault(pair_key(edge.source, edge.target), []).append(edge)

        placed: List[Tuple[float, float]] = []
        for group in groups.values():
            for edge, offset in zip(group, fan_offsets(len(group), self.max_offset)):
                edge.curve_offset = offset
                edge.geometry = self._place(edge, index, placed)

        return edges

    def _place(
        self,
        edge: "Edge",
        index: Dict[str, "Node"],
        placed: List[Tuple[float, float]],
    ) -> Optional[EdgeGeometry]:
        source = index.get(edge.source)
        target = index.get(edge.target)
        if source is None or target is None or not source.is_positioned or not target.is_positioned:
            logger.debug("Edge %s has an unpositioned endpoint, no geometry", edge.id)
            return None

        geometry = EdgeGeometry(x1=source.x, y1=source.y, x2=target.x, y2=target.y)
        dx = target.x - source.x
        dy = target.y - source.y
        length = math.sqrt(dx * dx + dy * dy)

        # Coincident endpoints have no perpendicular; draw them straight
        if edge.curve_offset == 0 or length == 0:
            return geometry

        mid_x = (source.x + target.x) / 2
        mid_y = (source.y + target.y) / 2
        control_x = mid_x - dy / length * edge.curve_offset
        control_y = mid_y + dx / length * edge.curve_offset

        if self._collides(control_x, control_y, placed):
            edge.curve_offset = -edge.curve_offset
            control_x = mid_x - dy / length * edge.curve_offset
            control_y = mid_y + dx / length * edge.curve_offset
            logger.debug("Mirrored edge %s to avoid an overlapping curve", edge.id)

        placed.append((control_x, control_y))
        geometry.control_x = control_x
        geometry.control_y = control_y
        return geometry

    def _collides(self, x: float, y: float, placed: List[Tuple[float, float]]) -> bool:
        for other_x, other_y in placed:
            if math.hypot(x - other_x, y - other_y) < self.min_separation:
                return True
        return False
