"""tracegraph - Aggregate relationship records into positioned, routed graphs."""

__version__ = "1.0.0"

from .aggregator import Edge, Graph, GraphAggregator, Node, RawRecord
from .config_loader import ConfigLoader
from .connectivity import TrafficClass, classify, count_components
from .interaction import RepositioningController
from .layout import LayoutEngine, UnsupportedLayoutError, layout
from .routing import EdgeCurveRouter

__all__ = [
    "__version__",
    "Edge",
    "Graph",
    "GraphAggregator",
    "Node",
    "RawRecord",
    "ConfigLoader",
    "TrafficClass",
    "classify",
    "count_components",
    "RepositioningController",
    "LayoutEngine",
    "UnsupportedLayoutError",
    "layout",
    "EdgeCurveRouter",
]
