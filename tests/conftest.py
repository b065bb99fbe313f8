"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tracegraph.aggregator import Edge, Graph, Node, RawRecord  # noqa: E402


@pytest.fixture
def make_record():
    """Factory for RawRecord objects with labels defaulting to ids."""

    def _make(source: str, target: str, status: Optional[str] = None, **kwargs) -> RawRecord:
        return RawRecord(
            source_id=source,
            target_id=target,
            source_label=kwargs.pop("source_label", source),
            target_label=kwargs.pop("target_label", target),
            status=status,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_graph():
    """Factory building a Graph from node ids and (source, target) pairs."""

    def _make(node_ids: List[str], pairs: List[tuple], positions: Optional[dict] = None) -> Graph:
        positions = positions or {}
        nodes = []
        for node_id in node_ids:
            x, y = positions.get(node_id, (None, None))
            nodes.append(Node(id=node_id, label=node_id, x=x, y=y))
        edges = []
        for index, pair in enumerate(pairs):
            source, target = pair[0], pair[1]
            edges.append(Edge(id=f"{source}->{target}#{index}", source=source, target=target))
        return Graph(nodes=nodes, edges=edges)

    return _make
