"""
Rendering Boundary

Exports a positioned, routed graph as the payload a renderer consumes, and
as a static SVG drawing for the command line.
"""

import html
from typing import Any, Dict, List, Optional

from .aggregator import Edge, Graph, Node
from .connectivity import TrafficClass
from .layout import LayoutConfig

TRAFFIC_COLORS = {
    TrafficClass.CROSS_GROUP: "#DC2626",
    TrafficClass.SAME_GROUP: "#059669",
    TrafficClass.UNKNOWN_GROUP: "#7C3AED",
}


def to_render_payload(graph: Graph) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize nodes and edges with the fields a renderer expects."""
    nodes = [
        {
            "id": node.id,
            "label": node.label,
            "groupId": node.group_id,
            "x": node.x,
            "y": node.y,
        }
        for node in graph.nodes
    ]
    edges = []
    for edge in graph.edges:
        item: Dict[str, Any] = {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "connectionCount": edge.connection_count,
            "trafficClass": edge.traffic_class,
            "statusCounts": dict(edge.status_counts),
            "correlationIds": sorted(edge.correlation_ids),
            "curveOffset": edge.curve_offset,
            "isCircular": edge.is_circular,
        }
        if edge.latency is not None:
            item["latency"] = edge.latency
        if edge.geometry is not None:
            item["path"] = edge.geometry.path
        edges.append(item)
    return {"nodes": nodes, "edges": edges}


class SVGRenderer:
    """Renders routed graphs as SVG."""

    NODE_RADIUS = 20

    def __init__(self, config: Optional[LayoutConfig] = None, show_labels: bool = True):
        self.config = config or LayoutConfig()
        self.show_labels = show_labels

    def render_svg(self, graph: Graph) -> str:
        """Generate SVG content for the diagram."""
        svg_parts = [
            f"""<svg xmlns="http://www.w3.org/2000/svg"
            viewBox="0 0 {self.config.canvas_width} {self.config.canvas_height}"
            width="100%" preserveAspectRatio="xMidYMid meet">""",
            self._render_defs(),
            """<rect width="100%" height="100%" fill="#fafafa"/>""",
        ]

        svg_parts.append('<g id="edges-layer">')
        for edge in graph.edges:
            svg_parts.append(self._render_edge(edge))
        svg_parts.append("</g>")

        svg_parts.append('<g id="nodes-layer">')
        for node in graph.nodes:
            if node.is_positioned:
                svg_parts.append(self._render_node(node))
        svg_parts.append("</g>")

        svg_parts.append("</svg>")
        return "\n".join(svg_parts)

    def _render_defs(self) -> str:
        return """<defs>
            <marker id="arrowhead" viewBox="0 -5 10 10" refX="22" refY="0"
                markerWidth="8" markerHeight="8" orient="auto">
                <path d="M0,-5L10,0L0,5" fill="#374151"/>
            </marker>
            <marker id="arrowhead-circular" viewBox="0 -5 10 10" refX="22" refY="0"
                markerWidth="8" markerHeight="8" orient="auto">
                <path d="M0,-5L10,0L0,5" fill="#DC2626"/>
            </marker>
        </defs>"""

    def _render_edge(self, edge: Edge) -> str:
        if edge.geometry is None:
            return ""

        color = TRAFFIC_COLORS.get(edge.traffic_class, "#000000")
        width = max(1, min(5, edge.connection_count))
        marker = "url(#arrowhead-circular)" if edge.is_circular else "url(#arrowhead)"
        return (
            f'<path class="edge" data-source="{html.escape(edge.source)}" '
            f'data-target="{html.escape(edge.target)}" d="{edge.geometry.path}" '
            f'fill="none" stroke="{color}" stroke-width="{width}" marker-end="{marker}">'
            f'<title>{edge.connection_count}</title></path>'
        )

    def _render_node(self, node: Node) -> str:
        parts = [
            f'<g class="node" data-id="{html.escape(node.id)}" transform="translate({node.x},{node.y})">',
            f'<circle r="{self.NODE_RADIUS}" fill="#1976D2" stroke="#fff" stroke-width="3"/>',
        ]
        if self.show_labels and node.label:
            initial = html.escape(node.label[0].upper())
            parts.append(
                f'<text text-anchor="middle" dy="0.35em" fill="white" font-size="12" '
                f'font-weight="600">{initial}</text>'
            )
            parts.append(
                f'<text text-anchor="middle" dy="2.5em" fill="#374151" font-size="11">'
                f'{html.escape(node.label)}</text>'
            )
        parts.append("</g>")
        return "".join(parts)
