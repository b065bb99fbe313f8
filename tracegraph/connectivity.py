"""
Connectivity Helpers

Traffic classification between groups and topology queries used for
summary statistics and edge routing.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple, Union

if TYPE_CHECKING:
    from .aggregator import Edge, Graph, Node


class TrafficClass:
    """Classification of an edge by the groups of its endpoints."""

    SAME_GROUP = 'same-group'
    CROSS_GROUP = 'cross-group'
    UNKNOWN_GROUP = 'unknown-group'

    ALL = (SAME_GROUP, CROSS_GROUP, UNKNOWN_GROUP)


def classify(group_a: Optional[str], group_b: Optional[str]) -> str:
    """Classify traffic between two owning groups.

    Missing (or empty) groups on either side give unknown-group.
    """
    if not group_a or not group_b:
        return TrafficClass.UNKNOWN_GROUP
    if group_a == group_b:
        return TrafficClass.SAME_GROUP
    return TrafficClass.CROSS_GROUP


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Unordered key for a node pair."""
    return (a, b) if a <= b else (b, a)


def mark_circular(edges: Iterable["Edge"]) -> None:
    """Flag every edge whose reverse direction also exists."""
    edges = list(edges)
    directed = {(edge.source, edge.target) for edge in edges}
    for edge in edges:
        edge.is_circular = (
            edge.source != edge.target and (edge.target, edge.source) in directed
        )


def count_components(
    graph: Union["Graph", List["Node"]],
    edges: Optional[List["Edge"]] = None,
) -> int:
    """Count connected components of the undirected projection.

    Args:
        graph: A Graph, or a node list when edges are passed separately;
            node order fixes the traversal order
        edges: Edges for a node list; direction is ignored, dangling
            edges are skipped

    Returns:
        Number of depth-first traversal roots needed to visit every node
    """
    if edges is None:
        nodes, edges = graph.nodes, graph.edges
    else:
        nodes = graph

    adjacency: Dict[str, Set[str]] = {node.id: set() for node in nodes}

    for edge in edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    visited: Set[str] = set()
    components = 0

    for node in nodes:
        if node.id in visited:
            continue
        components += 1
        # Explicit stack; large graphs would overflow the recursion limit
        stack = [node.id]
        visited.add(node.id)
        while stack:
            current = stack.pop()
            for neighbor in adjacency[current]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    stack.append(neighbor)

    return components
