#!/usr/bin/env python3
"""
tracegraph - Relationship Graph Generator

Builds a positioned node/edge graph from relationship records: file rows,
network events or distributed-trace spans exported as JSON.

Usage:
    # Rows with source/target[/label/status] columns, force layout, SVG output
    tracegraph -i connections.json

    # Trace spans, hierarchical layout, JSON payload for a renderer
    tracegraph -i spans.json -f spans -l hierarchical -o graph.json

    # Settings from a YAML file
    tracegraph -i events.json -f events -c tracegraph.yaml
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

from .aggregator import GraphAggregator, RawRecord, compute_stats
from .config_loader import ConfigError, ConfigLoader
from .layout import LayoutEngine, LayoutKind, UnsupportedLayoutError
from .renderer import SVGRenderer, to_render_payload
from .routing import EdgeCurveRouter
from .sources import records_from_events, records_from_rows, records_from_spans

INPUT_FORMATS: Dict[str, Callable[[List[Any]], List[Any]]] = {
    "rows": records_from_rows,
    "events": records_from_events,
    "spans": records_from_spans,
    "records": lambda items: [RawRecord.from_mapping(item) or item for item in items],
}


def _load_batches(input_path: Path, input_format: str) -> List[List[Any]]:
    """Read a JSON input file into record batches.

    The file holds either one list of items or a list of such lists
    (one batch per inner list).

    Raises:
        RuntimeError: If the file is missing or not valid JSON
    """
    if not input_path.exists():
        raise RuntimeError(f"Input file not found: {input_path}")

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Invalid JSON in {input_path}: {e}")
    except OSError as e:
        raise RuntimeError(f"Could not read {input_path}: {e}")

    if not isinstance(data, list):
        raise RuntimeError(f"{input_path} must contain a JSON list")

    convert = INPUT_FORMATS[input_format]
    if data and all(isinstance(item, list) for item in data):
        return [convert(batch) for batch in data]
    return [convert(data)]


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate a positioned relationship graph from JSON records.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    tracegraph -i connections.json
    tracegraph -i spans.json -f spans -l hierarchical -o graph.json
    tracegraph -i events.json -f events -c tracegraph.yaml
        """,
    )

    parser.add_argument("-i", "--input", required=True, help="Path to a JSON file of records")

    parser.add_argument(
        "-f",
        "--format",
        choices=sorted(INPUT_FORMATS),
        default="rows",
        help="Shape of the input items. Default: rows",
    )

    parser.add_argument(
        "-l",
        "--layout",
        default=None,
        help=f"Layout algorithm ({', '.join(LayoutKind.ALL)}). Default: from config, else force",
    )

    parser.add_argument("--spacing", type=float, default=None, help="Node spacing")
    parser.add_argument("--width", type=float, default=None, help="Canvas width")
    parser.add_argument("--height", type=float, default=None, help="Canvas height")

    parser.add_argument("-c", "--config", default=None, help="Path to a YAML config file")

    parser.add_argument(
        "-o",
        "--output",
        default="tracegraph.svg",
        help="Output file path (.svg or .json). Default: tracegraph.svg",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        try:
            config = ConfigLoader(args.config)
            layout_config = config.get_layout_config()
            max_offset, min_separation = config.get_routing_settings()
        except ConfigError as e:
            raise RuntimeError(str(e))

        if args.width is not None:
            layout_config.canvas_width = args.width
        if args.height is not None:
            layout_config.canvas_height = args.height
        if args.spacing is not None:
            layout_config.spacing = args.spacing
        layout_kind = args.layout or config.get_layout_kind()

        batches = _load_batches(Path(args.input), args.format)
        if args.verbose:
            print(f"Loaded {sum(len(b) for b in batches)} records in {len(batches)} batches")

        graph = GraphAggregator(config).aggregate(batches)

        try:
            LayoutEngine(layout_config).apply(layout_kind, graph.nodes, graph.edges)
        except UnsupportedLayoutError as e:
            raise RuntimeError(str(e))

        EdgeCurveRouter(max_offset, min_separation).route(graph.nodes, graph.edges)

        output_path = Path(args.output)
        if output_path.suffix.lower() == ".json":
            output_path.write_text(json.dumps(to_render_payload(graph), indent=2), encoding="utf-8")
        else:
            output_path.write_text(SVGRenderer(layout_config).render_svg(graph), encoding="utf-8")

        stats = compute_stats(graph)
        print(f"Graph generated: {output_path.absolute()}")
        print("\nSummary:")
        print(f"  Nodes: {stats.node_count}")
        print(f"  Edges: {stats.edge_count}")
        print(f"  Connections: {stats.total_connections}")
        print(f"  Components: {stats.connected_components}")
        print(f"  Groups: {len(stats.groups)}")

    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
