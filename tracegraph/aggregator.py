"""
Graph Aggregator

Folds batches of raw relationship records into one canonical graph:
nodes deduplicated by id, edges aggregated per ordered (source, target)
pair with connection counts, status histograms and correlation ids.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .config_loader import ConfigLoader
from .connectivity import TrafficClass, classify, count_components, mark_circular

if TYPE_CHECKING:
    from .routing import EdgeGeometry

logger = logging.getLogger(__name__)

GROUP_AUTHORITATIVE = 'authoritative'
GROUP_INFERRED = 'inferred'

# RawRecord field -> accepted mapping keys
_RECORD_KEYS = {
    'source_id': ('source_id', 'sourceId'),
    'target_id': ('target_id', 'targetId'),
    'source_label': ('source_label', 'sourceLabel'),
    'target_label': ('target_label', 'targetLabel'),
    'source_group': ('source_group', 'sourceGroup'),
    'target_group': ('target_group', 'targetGroup'),
    'status': ('status',),
    'correlation_id': ('correlation_id', 'correlationId'),
    'latency': ('latency',),
}


@dataclass
class RawRecord:
    """One observed relationship between two endpoints."""

    source_id: str
    target_id: str
    source_label: Optional[str] = None
    target_label: Optional[str] = None
    source_group: Optional[str] = None
    target_group: Optional[str] = None
    status: Optional[str] = None
    correlation_id: Optional[str] = None
    latency: Optional[float] = None  # milliseconds

    @classmethod
    def from_mapping(cls, data: Any) -> Optional["RawRecord"]:
        """Build a record from a dict with camelCase or snake_case keys.

        Returns None when data is not a mapping.
        """
        if not isinstance(data, Mapping):
            return None

        values: Dict[str, Any] = {}
        for attr, keys in _RECORD_KEYS.items():
            for key in keys:
                if data.get(key) is not None:
                    values[attr] = data[key]
                    break

        latency = values.get('latency')
        if latency is not None:
            try:
                values['latency'] = float(latency)
            except (TypeError, ValueError):
                values['latency'] = None

        for attr in ('source_id', 'target_id', 'source_label', 'target_label',
                     'source_group', 'target_group', 'status', 'correlation_id'):
            if values.get(attr) is not None:
                values[attr] = str(values[attr])

        return cls(
            source_id=values.get('source_id', ''),
            target_id=values.get('target_id', ''),
            source_label=values.get('source_label'),
            target_label=values.get('target_label'),
            source_group=values.get('source_group'),
            target_group=values.get('target_group'),
            status=values.get('status'),
            correlation_id=values.get('correlation_id'),
            latency=values.get('latency'),
        )


@dataclass
class Node:
    """An endpoint in the graph."""

    id: str
    label: str
    group_id: Optional[str] = None
    group_source: Optional[str] = None  # 'authoritative' or 'inferred'
    x: Optional[float] = None
    y: Optional[float] = None
    endpoints: Set[str] = field(default_factory=set)

    @property
    def is_positioned(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass
class Edge:
    """A directed relationship aggregating one or more records."""

    id: str
    source: str
    target: str
    connection_count: int = 1
    traffic_class: str = TrafficClass.UNKNOWN_GROUP
    status_counts: Dict[str, int] = field(default_factory=dict)
    correlation_ids: Set[str] = field(default_factory=set)
    latency: Optional[float] = None
    curve_offset: float = 0.0
    is_circular: bool = False
    geometry: Optional["EdgeGeometry"] = None


@dataclass
class Graph:
    """Ordered nodes and edges; every edge endpoint is a node id."""

    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def node_index(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edges_touching(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id or e.target == node_id]


@dataclass
class GraphStats:
    """Summary statistics for a graph."""

    node_count: int
    edge_count: int
    total_connections: int
    connected_components: int
    groups: List[str] = field(default_factory=list)


@dataclass
class StatusBreakdown:
    """Status histogram totals bucketed by HTTP status class."""

    total: int = 0
    success: int = 0
    client_error: int = 0
    server_error: int = 0


def _escape_id_part(value: str) -> str:
    return value.replace("\\", "\\\\").replace(">", "\\>").replace("#", "\\#")


def edge_id(source: str, target: str, qualifier: Optional[str] = None) -> str:
    """Derive an edge id from its endpoints and an optional qualifier.

    Backslash, '>' and '#' inside the parts are escaped, so distinct
    (source, target, qualifier) triples never share an id.
    """
    base = f"{_escape_id_part(source)}->{_escape_id_part(target)}"
    return f"{base}#{_escape_id_part(qualifier)}" if qualifier else base


def _record_id(value: Any) -> str:
    """Normalise a record endpoint id; anything but a str or int is malformed."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return ''
    return str(value).strip()


def infer_group(node_id: str, separators: Sequence[str] = ('.', ':')) -> Optional[str]:
    """Guess a group from an id shaped like <group><separator><leaf>.

    The earliest separator occurrence splits the id; both parts must be
    non-empty, otherwise no group is inferred.
    """
    positions = [node_id.find(sep) for sep in separators if sep]
    positions = [pos for pos in positions if pos >= 0]
    if not positions:
        return None

    split_at = min(positions)
    group = node_id[:split_at]
    leaf = node_id[split_at + 1:]
    if not group or not leaf:
        return None
    return group


def assign_group(node: Node, group: Optional[str], authoritative: bool) -> bool:
    """Apply the group precedence rule to a node.

    An authoritative group fills an empty or inferred slot; an inferred
    group only fills an empty slot; an authoritative assignment is final.

    Returns:
        True if the node's group changed
    """
    if not group:
        return False

    if authoritative:
        if node.group_source == GROUP_AUTHORITATIVE:
            return False
        node.group_id = group
        node.group_source = GROUP_AUTHORITATIVE
        return True

    if node.group_id:
        return False
    node.group_id = group
    node.group_source = GROUP_INFERRED
    return True


def status_breakdown(edges: Iterable[Edge], connection: Optional[str] = None) -> StatusBreakdown:
    """Bucket status histograms into 2xx/4xx/5xx totals.

    Args:
        edges: Edges whose status_counts are summed
        connection: Optional "source → target" filter; 'all' means no filter

    Returns:
        StatusBreakdown; non-numeric labels only count towards total
    """
    result = StatusBreakdown()
    for edge in edges:
        if connection and connection != 'all':
            if f"{edge.source} → {edge.target}" != connection:
                continue
        for status, count in edge.status_counts.items():
            result.total += count
            try:
                code = int(status)
            except (TypeError, ValueError):
                continue
            if 200 <= code < 300:
                result.success += count
            elif 400 <= code < 500:
                result.client_error += count
            elif 500 <= code < 600:
                result.server_error += count
    return result


def compute_stats(graph: Graph) -> GraphStats:
    groups: List[str] = []
    for node in graph.nodes:
        if node.group_id and node.group_id not in groups:
            groups.append(node.group_id)

    return GraphStats(
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        total_connections=sum(e.connection_count for e in graph.edges),
        connected_components=count_components(graph),
        groups=groups,
    )


@dataclass
class _EdgeAccumulator:
    count: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    correlation_ids: Set[str] = field(default_factory=set)
    latency_total: float = 0.0
    latency_samples: int = 0


class GraphAggregator:
    """Aggregates raw record batches into canonical graphs."""

    def __init__(self, config_loader: Optional[ConfigLoader] = None):
        self._config = config_loader or ConfigLoader()
        self._separators = self._config.get_group_separators()

    def _register_node(
        self,
        nodes: Dict[str, Node],
        node_id: str,
        label: Optional[str],
        group: Optional[str],
    ) -> None:
        node = nodes.get(node_id)
        if node is None:
            node = Node(id=node_id, label=label or node_id)
            nodes[node_id] = node

        if label:
            node.endpoints.add(label)

        if group:
            assign_group(node, group, authoritative=True)
        elif not node.group_id:
            assign_group(node, infer_group(node_id, self._separators), authoritative=False)

    def aggregate(self, batches: Sequence[Sequence[Any]]) -> Graph:
        """Fold record batches into a new graph.

        Args:
            batches: List of batches; each batch is a list of RawRecord
                objects or record mappings

        Returns:
            Graph with deduplicated nodes and one edge per ordered pair

        Raises:
            TypeError: If batches, or one of its batches, is not a list
        """
        if not isinstance(batches, (list, tuple)):
            raise TypeError(f"batches must be a list of record lists, got {type(batches).__name__}")

        nodes: Dict[str, Node] = {}
        accumulators: Dict[Tuple[str, str], _EdgeAccumulator] = {}
        skipped = 0

        for batch_index, batch in enumerate(batches):
            if not isinstance(batch, (list, tuple)):
                raise TypeError(f"batch {batch_index} must be a list, got {type(batch).__name__}")

            for raw in batch:
                record = raw if isinstance(raw, RawRecord) else RawRecord.from_mapping(raw)
                source_id = _record_id(record.source_id) if record else ''
                target_id = _record_id(record.target_id) if record else ''
                if not source_id or not target_id:
                    skipped += 1
                    logger.debug("Skipping malformed record in batch %d: %r", batch_index, raw)
                    continue

                # Nodes before edges so every edge endpoint exists
                self._register_node(nodes, source_id, record.source_label, record.source_group)
                self._register_node(nodes, target_id, record.target_label, record.target_group)

                acc = accumulators.setdefault((source_id, target_id), _EdgeAccumulator())
                acc.count += 1
                if record.status:
                    acc.status_counts[record.status] = acc.status_counts.get(record.status, 0) + 1
                if record.correlation_id:
                    acc.correlation_ids.add(record.correlation_id)
                if record.latency is not None:
                    acc.latency_total += record.latency
                    acc.latency_samples += 1

        edges: List[Edge] = []
        for (source_id, target_id), acc in accumulators.items():
            edges.append(Edge(
                id=edge_id(source_id, target_id),
                source=source_id,
                target=target_id,
                connection_count=acc.count,
                traffic_class=classify(nodes[source_id].group_id, nodes[target_id].group_id),
                status_counts=acc.status_counts,
                correlation_ids=acc.correlation_ids,
                latency=(acc.latency_total / acc.latency_samples) if acc.latency_samples else None,
            ))

        mark_circular(edges)

        if skipped:
            logger.info("Skipped %d malformed records", skipped)
        logger.debug("Aggregated %d nodes and %d edges", len(nodes), len(edges))

        return Graph(nodes=list(nodes.values()), edges=edges)

    def merge(self, base: Graph, incoming: Graph) -> Graph:
        """Merge two aggregated graphs into a new one.

        Nodes are unioned by id (incoming wins on label, endpoint sets are
        unioned, positions survive from base). Edges are unioned by
        (source, target, id) with counts summed, histograms merged and latency
        averaged pairwise.
        """
        nodes: Dict[str, Node] = {node.id: copy.deepcopy(node) for node in base.nodes}

        for node in incoming.nodes:
            existing = nodes.get(node.id)
            if existing is None:
                nodes[node.id] = copy.deepcopy(node)
                continue

            existing.label = node.label or existing.label
            existing.endpoints |= node.endpoints
            if node.is_positioned:
                existing.x, existing.y = node.x, node.y
            assign_group(existing, node.group_id, node.group_source == GROUP_AUTHORITATIVE)

        edges: Dict[Tuple[str, str, str], Edge] = {
            (edge.source, edge.target, edge.id): copy.deepcopy(edge) for edge in base.edges
        }

        for edge in incoming.edges:
            key = (edge.source, edge.target, edge.id)
            existing = edges.get(key)
            if existing is None:
                edges[key] = copy.deepcopy(edge)
                continue

            existing.connection_count += edge.connection_count
            for status, count in edge.status_counts.items():
                existing.status_counts[status] = existing.status_counts.get(status, 0) + count
            existing.correlation_ids |= edge.correlation_ids
            # Pairwise mean, not a running average across all merges
            if existing.latency is not None and edge.latency is not None:
                existing.latency = (existing.latency + edge.latency) / 2
            elif edge.latency is not None:
                existing.latency = edge.latency

        merged_edges = list(edges.values())
        for edge in merged_edges:
            source, target = nodes.get(edge.source), nodes.get(edge.target)
            edge.traffic_class = classify(
                source.group_id if source else None,
                target.group_id if target else None,
            )
        mark_circular(merged_edges)

        return Graph(nodes=list(nodes.values()), edges=merged_edges)

    def fold(self, graph: Graph, batches: Sequence[Sequence[Any]]) -> Graph:
        """Aggregate batches and merge the result into an existing graph."""
        return self.merge(graph, self.aggregate(batches))
