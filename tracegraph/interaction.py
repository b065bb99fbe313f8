"""
Interactive Repositioning

Moves a dragged node and re-routes only the edges attached to it.
"""

import logging
from typing import List, Optional

from .aggregator import Edge, Graph
from .routing import EdgeCurveRouter

logger = logging.getLogger(__name__)


class NodeNotFoundError(KeyError):
    """Raised when a drag targets a node id that is not in the graph."""


class RepositioningController:
    """Applies node drags to a routed graph in place.

    Only edges touching the dragged node are re-routed, with a collision
    set scoped to that recomputation. Untouched edges keep their geometry
    even if the moved node now crowds one of their curves.
    """

    def __init__(self, graph: Graph, router: Optional[EdgeCurveRouter] = None):
        self.graph = graph
        self.router = router or EdgeCurveRouter()

    def move_node(self, node_id: str, x: float, y: float) -> List[Edge]:
        """Place a node at (x, y) and re-route its edges.

        Returns:
            The re-routed edges

        Raises:
            NodeNotFoundError: If node_id is not in the graph
        """
        node = self.graph.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)

        node.x = x
        node.y = y

        affected = self.graph.edges_touching(node_id)
        if affected:
            self.router.route_subset(self.graph.nodes, affected)
        logger.debug("Moved %s to (%s, %s), re-routed %d edges", node_id, x, y, len(affected))
        return affected

    def drag_by(self, node_id: str, dx: float, dy: float) -> List[Edge]:
        """Shift a node by a drag delta and re-route its edges."""
        node = self.graph.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        if not node.is_positioned:
            raise ValueError(f"Node {node_id!r} has no position to drag from")
        return self.move_node(node_id, node.x + dx, node.y + dy)
