"""
Record Sources

Normalises the output of collaborators (tabular file rows, network event
feeds, distributed-trace spans) into RawRecord batches. Endpoint values
that arrive as bare ids or embedded node objects are reduced to ids here,
so nothing downstream has to branch on their type.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .aggregator import RawRecord

logger = logging.getLogger(__name__)


def endpoint_id(value: Any) -> Optional[str]:
    """Reduce an endpoint reference to its id string.

    Accepts a bare id, a mapping with an 'id' key, or an object with an
    `id` attribute. Returns None for anything else or an empty id.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get('id')
    elif not isinstance(value, (str, int)):
        value = getattr(value, 'id', None)

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _column(row: Mapping[str, Any], name: str) -> str:
    """Case-insensitive column lookup returning a stripped string."""
    for key, value in row.items():
        if isinstance(key, str) and key.strip().lower() == name and value is not None:
            return str(value).strip()
    return ''


def records_from_rows(rows: Iterable[Any]) -> List[RawRecord]:
    """Convert file rows with source/target[/label/status] columns.

    With a label, each endpoint becomes '<name>_<label>' and the bare name
    is its authoritative group; without one the name is the node id and
    the group is left to inference.
    """
    records: List[RawRecord] = []
    for row in rows:
        if not isinstance(row, Mapping):
            logger.debug("Skipping non-mapping row: %r", row)
            continue

        source = _column(row, 'source')
        target = _column(row, 'target')
        label = _column(row, 'label')
        status = _column(row, 'status')
        if not source or not target:
            logger.debug("Skipping row without source/target: %r", row)
            continue

        if label:
            records.append(RawRecord(
                source_id=f"{source}_{label}",
                target_id=f"{target}_{label}",
                source_label=label,
                target_label=label,
                source_group=source,
                target_group=target,
                status=status or None,
            ))
        else:
            records.append(RawRecord(
                source_id=source,
                target_id=target,
                source_label=source,
                target_label=target,
                status=status or None,
            ))
    return records


def records_from_events(events: Iterable[Any]) -> List[RawRecord]:
    """Convert network events (one record per observed call)."""
    records: List[RawRecord] = []
    for event in events:
        if not isinstance(event, Mapping):
            continue

        source = endpoint_id(event.get('source'))
        target = endpoint_id(event.get('target'))
        if not source or not target:
            logger.debug("Skipping event without endpoints: %r", event)
            continue

        latency = event.get('responseTime')
        status = event.get('status')
        trace_id = event.get('traceId')
        records.append(RawRecord(
            source_id=source,
            target_id=target,
            source_label=event.get('sourceLabel') or source,
            target_label=event.get('targetLabel') or target,
            source_group=event.get('sourceService') or None,
            target_group=event.get('targetService') or None,
            status=str(status) if status not in (None, '') else None,
            correlation_id=str(trace_id) if trace_id else None,
            latency=float(latency) if isinstance(latency, (int, float)) else None,
        ))
    return records


def _span_node_id(span: Mapping[str, Any]) -> str:
    return f"{span.get('serviceName', '')}:{span.get('operationName', '')}"


def records_from_spans(spans: Iterable[Any]) -> List[RawRecord]:
    """Convert trace spans into parent -> child call records.

    Spans are grouped by trace and ordered by start time. Only calls that
    cross a service boundary become records; in-service nesting is dropped.
    """
    by_trace: Dict[str, List[Mapping[str, Any]]] = {}
    for span in spans:
        if not isinstance(span, Mapping) or not span.get('traceId') or not span.get('spanId'):
            logger.debug("Skipping span without trace/span id: %r", span)
            continue
        by_trace.setdefault(str(span['traceId']), []).append(span)

    records: List[RawRecord] = []
    for trace_id, trace_spans in by_trace.items():
        trace_spans.sort(key=lambda s: str(s.get('startTime') or ''))
        by_span_id = {str(s['spanId']): s for s in trace_spans}

        for span in trace_spans:
            parent_id = span.get('parentSpanId')
            parent = by_span_id.get(str(parent_id)) if parent_id else None
            if parent is None:
                continue
            if not span.get('serviceName') or parent.get('serviceName') == span.get('serviceName'):
                continue

            attributes = span.get('attributes') or {}
            status = attributes.get('http.status_code') or span.get('status')
            duration = span.get('duration')

            records.append(RawRecord(
                source_id=_span_node_id(parent),
                target_id=_span_node_id(span),
                source_label=parent.get('operationName'),
                target_label=span.get('operationName'),
                source_group=parent.get('serviceName'),
                target_group=span.get('serviceName'),
                status=str(status) if status not in (None, '') else None,
                correlation_id=trace_id,
                # nanoseconds -> milliseconds
                latency=duration / 1_000_000 if isinstance(duration, (int, float)) else None,
            ))

    logger.debug("Derived %d call records from %d traces", len(records), len(by_trace))
    return records
