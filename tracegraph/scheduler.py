"""
Live Poll Scheduler

Caller-owned replacement for interval timers: the caller drives `tick()`
from its own loop, and the clock is injected so tests control time.
"""

import logging
import threading
import time
from typing import Any, Callable, List, Optional

from .aggregator import Graph, GraphAggregator

logger = logging.getLogger(__name__)


class PollScheduler:
    """Periodically folds freshly fetched record batches into a graph."""

    def __init__(
        self,
        fetch_batch: Callable[[], List[Any]],
        aggregator: Optional[GraphAggregator] = None,
        interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        graph: Optional[Graph] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fetch_batch = fetch_batch
        self.aggregator = aggregator or GraphAggregator()
        self.interval = interval
        self.clock = clock
        self._graph = graph or Graph()
        self._next_due: Optional[float] = None
        # One aggregation pass in flight per graph
        self._lock = threading.Lock()
        self.polls = 0

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def is_running(self) -> bool:
        return self._next_due is not None

    def start(self) -> None:
        """Start polling; the first poll is due immediately."""
        if self._next_due is None:
            self._next_due = self.clock()
            logger.info("Live polling started (every %.1fs)", self.interval)

    def stop(self) -> None:
        if self._next_due is not None:
            self._next_due = None
            logger.info("Live polling stopped after %d polls", self.polls)

    def tick(self) -> bool:
        """Poll once if running and due.

        Returns:
            True if a batch was fetched and folded into the graph
        """
        if self._next_due is None:
            return False

        now = self.clock()
        if now < self._next_due:
            return False

        with self._lock:
            batch = self.fetch_batch()
            self._graph = self.aggregator.fold(self._graph, [batch])
            self.polls += 1

        # Skip missed intervals instead of replaying them
        while self._next_due is not None and self._next_due <= now:
            self._next_due += self.interval

        logger.debug(
            "Poll %d folded %d records: %d nodes, %d edges",
            self.polls, len(batch), len(self._graph.nodes), len(self._graph.edges),
        )
        return True
