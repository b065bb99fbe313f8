"""
Layout Engine

Computes 2D positions for graph nodes. Six interchangeable algorithms share
one contract: edges are read-only, only node x/y are written.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from .aggregator import Edge, Node

logger = logging.getLogger(__name__)


class LayoutKind:
    """Names of the supported layout algorithms."""

    FORCE = 'force'
    HIERARCHICAL = 'hierarchical'
    CIRCULAR = 'circular'
    GRID = 'grid'
    GROUP_CLUSTERED = 'group-clustered'
    DEGREE_RANKED = 'degree-ranked'

    ALL = (FORCE, HIERARCHICAL, CIRCULAR, GRID, GROUP_CLUSTERED, DEGREE_RANKED)

    # Names used by earlier releases
    ALIASES = {
        'service-grouped': GROUP_CLUSTERED,
        'network-topology': DEGREE_RANKED,
    }

    @classmethod
    def normalize(cls, kind: str) -> str:
        """Resolve aliases; raise UnsupportedLayoutError for unknown names."""
        name = cls.ALIASES.get(kind, kind)
        if name not in cls.ALL:
            raise UnsupportedLayoutError(kind)
        return name


class UnsupportedLayoutError(ValueError):
    """Raised when a caller asks for a layout algorithm that does not exist."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f"Unsupported layout: {kind!r} (expected one of {', '.join(LayoutKind.ALL)})"
        )


@dataclass
class LayoutConfig:
    """Configuration for layout engine."""
    canvas_width: float = 800
    canvas_height: float = 600
    spacing: float = 100

    # Force simulation
    iterations: int = 300
    charge_strength: float = -300.0
    collision_radius: float = 30.0
    velocity_decay: float = 0.6
    alpha_min: float = 0.001

    # Group clusters
    cluster_margin: float = 80.0
    max_cluster_radius: float = 100.0

    # Degree rings
    ring_capacity: int = 8
    ring_gap: float = 60.0

    circle_ratio: float = 0.3
    seed: int = 0


@dataclass
class _Body:
    """Mutable simulation state for one node."""
    node: "Node"
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


class LayoutEngine:
    """Positions nodes with one of the supported algorithms."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()
        self._algorithms: Dict[str, Callable[..., None]] = {
            LayoutKind.FORCE: self._force_layout,
            LayoutKind.HIERARCHICAL: self._hierarchical_layout,
            LayoutKind.CIRCULAR: self._circular_layout,
            LayoutKind.GRID: self._grid_layout,
            LayoutKind.GROUP_CLUSTERED: self._group_clustered_layout,
            LayoutKind.DEGREE_RANKED: self._degree_ranked_layout,
        }

    def apply(
        self,
        kind: str,
        nodes: List["Node"],
        edges: List["Edge"],
        width: Optional[float] = None,
        height: Optional[float] = None,
        spacing: Optional[float] = None,
    ) -> List["Node"]:
        """
        Position nodes in place and return them.

        Raises:
            UnsupportedLayoutError: If kind is not a known algorithm
        """
        name = LayoutKind.normalize(kind)
        width = self.config.canvas_width if width is None else width
        height = self.config.canvas_height if height is None else height
        spacing = self.config.spacing if spacing is None else spacing

        if nodes:
            self._algorithms[name](nodes, edges, width, height, spacing)
            logger.debug("Applied %s layout to %d nodes", name, len(nodes))

        return nodes

    # Force

    def _force_layout(self, nodes, edges, width, height, spacing) -> None:
        """Physics relaxation run for a fixed number of ticks.

        Forces: link attraction towards `spacing`, many-body repulsion,
        centering on the canvas and a collision radius. Alpha decays from 1
        to alpha_min over the iteration budget.
        """
        cfg = self.config
        rng = random.Random(cfg.seed)
        cx, cy = width / 2, height / 2

        def jiggle() -> float:
            return (rng.random() - 0.5) * 1e-6 or 1e-6

        bodies: List[_Body] = []
        golden_angle = math.pi * (3 - math.sqrt(5))
        for i, node in enumerate(nodes):
            if node.is_positioned:
                bodies.append(_Body(node, float(node.x), float(node.y)))
            else:
                # Phyllotaxis arrangement around the canvas centre
                radius = 10 * math.sqrt(0.5 + i)
                angle = i * golden_angle
                bodies.append(_Body(node, cx + radius * math.cos(angle), cy + radius * math.sin(angle)))

        by_id = {body.node.id: body for body in bodies}
        links = [
            (by_id[e.source], by_id[e.target])
            for e in edges
            if e.source in by_id and e.target in by_id and e.source != e.target
        ]
        degree: Dict[str, int] = {}
        for source, target in links:
            degree[source.node.id] = degree.get(source.node.id, 0) + 1
            degree[target.node.id] = degree.get(target.node.id, 0) + 1

        alpha = 1.0
        iterations = max(1, cfg.iterations)
        alpha_decay = 1 - cfg.alpha_min ** (1 / iterations)
        radius = cfg.collision_radius

        for _ in range(iterations):
            alpha += (0.0 - alpha) * alpha_decay

            for source, target in links:
                ds, dt = degree[source.node.id], degree[target.node.id]
                strength = 1 / min(ds, dt)
                bias = ds / (ds + dt)
                x = target.x + target.vx - source.x - source.vx or jiggle()
                y = target.y + target.vy - source.y - source.vy or jiggle()
                length = math.sqrt(x * x + y * y)
                length = (length - spacing) / length * alpha * strength
                x *= length
                y *= length
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)

            for body in bodies:
                for other in bodies:
                    if other is body:
                        continue
                    x = other.x - body.x or jiggle()
                    y = other.y - body.y or jiggle()
                    dist2 = x * x + y * y
                    if dist2 < 1:
                        dist2 = math.sqrt(dist2)
                    w = cfg.charge_strength * alpha / dist2
                    body.vx += x * w
                    body.vy += y * w

            for i, body in enumerate(bodies):
                for other in bodies[i + 1:]:
                    x = body.x + body.vx - other.x - other.vx or jiggle()
                    y = body.y + body.vy - other.y - other.vy or jiggle()
                    dist = math.sqrt(x * x + y * y)
                    overlap = 2 * radius
                    if dist < overlap:
                        push = (overlap - dist) / dist * 0.5
                        body.vx += x * push
                        body.vy += y * push
                        other.vx -= x * push
                        other.vy -= y * push

            for body in bodies:
                body.vx *= 1 - cfg.velocity_decay
                body.vy *= 1 - cfg.velocity_decay
                body.x += body.vx
                body.y += body.vy

            # Centering moves the mean without touching velocities
            mean_x = sum(b.x for b in bodies) / len(bodies)
            mean_y = sum(b.y for b in bodies) / len(bodies)
            for body in bodies:
                body.x -= mean_x - cx
                body.y -= mean_y - cy

        for body in bodies:
            body.node.x = body.x
            body.node.y = body.y

    # Hierarchical

    def _hierarchical_layout(self, nodes, edges, width, height, spacing) -> None:
        """Level nodes breadth-first from zero in-degree roots.

        Nodes not reachable from any root seed another traversal that joins
        level 0, so every node is placed.
        """
        node_ids = [node.id for node in nodes]
        known = set(node_ids)
        in_degree = {node_id: 0 for node_id in node_ids}
        children: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
        for edge in edges:
            if edge.source in known and edge.target in known:
                in_degree[edge.target] += 1
                if edge.target not in children[edge.source]:
                    children[edge.source].append(edge.target)

        levels: List[List[str]] = []
        visited = set()

        def traverse(seeds: List[str]) -> None:
            current = [s for s in seeds if s not in visited]
            visited.update(current)
            depth = 0
            while current:
                if depth == len(levels):
                    levels.append([])
                levels[depth].extend(current)
                following = []
                for node_id in current:
                    for child in children[node_id]:
                        if child not in visited:
                            visited.add(child)
                            following.append(child)
                current = following
                depth += 1

        traverse([node_id for node_id in node_ids if in_degree[node_id] == 0])
        for node_id in node_ids:
            if node_id not in visited:
                traverse([node_id])

        index = {node.id: node for node in nodes}
        level_height = height / max(len(levels), 1)
        for level_index, level in enumerate(levels):
            cell_width = width / max(len(level), 1)
            for position, node_id in enumerate(level):
                node = index[node_id]
                node.x = (position + 0.5) * cell_width
                node.y = (level_index + 0.5) * level_height

    # Circular

    def _circular_layout(self, nodes, edges, width, height, spacing) -> None:
        cx, cy = width / 2, height / 2
        if len(nodes) == 1:
            nodes[0].x, nodes[0].y = cx, cy
            return

        radius = min(width, height) * self.config.circle_ratio
        for index, node in enumerate(nodes):
            angle = 2 * math.pi * index / len(nodes)
            node.x = cx + radius * math.cos(angle)
            node.y = cy + radius * math.sin(angle)

    # Grid

    def _grid_layout(self, nodes, edges, width, height, spacing) -> None:
        cols = math.ceil(math.sqrt(len(nodes)))
        rows = math.ceil(len(nodes) / cols)
        cell_width = width / cols
        cell_height = height / rows

        for index, node in enumerate(nodes):
            row, col = divmod(index, cols)
            node.x = (col + 0.5) * cell_width
            node.y = (row + 0.5) * cell_height

    # Group clusters

    def _group_clustered_layout(self, nodes, edges, width, height, spacing) -> None:
        """Place each group's members on a small circle around a grid cell.

        Ungrouped nodes are singleton groups placed after the real groups.
        """
        clusters: List[List["Node"]] = []
        by_group: Dict[str, List["Node"]] = {}
        singletons: List[List["Node"]] = []

        for node in nodes:
            if node.group_id:
                if node.group_id not in by_group:
                    by_group[node.group_id] = []
                    clusters.append(by_group[node.group_id])
                by_group[node.group_id].append(node)
            else:
                singletons.append([node])
        clusters.extend(singletons)

        margin = self.config.cluster_margin
        per_row = math.ceil(math.sqrt(len(clusters)))
        cell = spacing * 2.5

        for index, members in enumerate(clusters):
            row, col = divmod(index, per_row)
            center_x = margin + col * cell + cell / 2
            center_y = margin + row * cell + cell / 2

            if len(members) == 1:
                members[0].x, members[0].y = center_x, center_y
                continue

            radius = min(self.config.max_cluster_radius, 30 + len(members) * 8)
            for member_index, member in enumerate(members):
                angle = 2 * math.pi * member_index / len(members)
                member.x = center_x + radius * math.cos(angle)
                member.y = center_y + radius * math.sin(angle)

    # Degree rings

    def _degree_ranked_layout(self, nodes, edges, width, height, spacing) -> None:
        """Hub at the centre, remaining nodes on rings by descending degree."""
        degree = {node.id: 0 for node in nodes}
        for edge in edges:
            if edge.source in degree:
                degree[edge.source] += 1
            if edge.target in degree:
                degree[edge.target] += 1

        ranked = sorted(nodes, key=lambda n: degree[n.id], reverse=True)
        cx, cy = width / 2, height / 2
        max_radius = min(width, height) / 3
        capacity = max(1, self.config.ring_capacity)
        others = len(ranked) - 1

        for rank, node in enumerate(ranked):
            if rank == 0:
                node.x, node.y = cx, cy
                continue

            ring = math.ceil(rank / capacity)
            ring_radius = min(max_radius, ring * self.config.ring_gap)
            in_ring = min(capacity, others - (ring - 1) * capacity)
            angle = ((rank - 1) % capacity) * 2 * math.pi / in_ring
            node.x = cx + ring_radius * math.cos(angle)
            node.y = cy + ring_radius * math.sin(angle)


def layout(
    kind: str,
    nodes: List["Node"],
    edges: List["Edge"],
    width: float,
    height: float,
    spacing: float = 100,
) -> List["Node"]:
    """Position nodes with the named algorithm using default settings."""
    return LayoutEngine().apply(kind, nodes, edges, width, height, spacing)
