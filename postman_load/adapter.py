from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from .aggregator import ExecutionRecord, MetricsAggregator
from .collection import Collection, RequestBodySet, load_collection
from .runner import CollectionRunner

LOGGER = logging.getLogger("postman_load.adapter")

BODY_VARIABLE_PREFIX = "requestBody"


def body_overrides(
    collection: Collection,
    bodies: RequestBodySet,
    user_index: int,
) -> list[tuple[str, str]]:
    """Environment overrides giving ``user_index`` its rotating request bodies.

    Items are matched by name; the variable is keyed by the item's position
    in the flattened collection, e.g. ``requestBody0`` for the first request.
    """
    overrides: list[tuple[str, str]] = []
    if not bodies:
        return overrides
    for position, item in enumerate(collection.items):
        entry = bodies.get(item.name)
        if entry is None:
            continue
        overrides.append((f"{BODY_VARIABLE_PREFIX}{position}", entry.select(user_index)))
    return overrides


class ExecutionAdapter:
    """Turns one scheduled tick into one collection run fed into the aggregator."""

    def __init__(
        self,
        collection_path: str | Path,
        aggregator: MetricsAggregator,
        runner: CollectionRunner | None = None,
        bodies: RequestBodySet | None = None,
        collection_loader: Callable[[str | Path], Collection] = load_collection,
    ) -> None:
        self._collection_path = collection_path
        self._aggregator = aggregator
        self._runner = runner or CollectionRunner()
        self._bodies = bodies or RequestBodySet()
        self._collection_loader = collection_loader
        self._execution_lock = threading.Lock()
        self._execution_count = 0

    def execute_once(self, user_index: int) -> list[ExecutionRecord]:
        with self._execution_lock:
            self._execution_count += 1
            count = self._execution_count
        LOGGER.info("Running collection (count: %d, user: %d)", count, user_index)

        collection = self._collection_loader(self._collection_path)
        environment = body_overrides(collection, self._bodies, user_index)
        # CollectionRunError propagates to the caller; it is fatal for the run.
        summary = self._runner.run(collection, environment)

        records = [
            ExecutionRecord(
                request_name=entry.item_name,
                status_code=entry.status_code,
                latency_ms=entry.response_time_ms,
            )
            for entry in summary.executions
        ]
        self._aggregator.extend(records)
        return records


__all__ = ["BODY_VARIABLE_PREFIX", "ExecutionAdapter", "body_overrides"]
