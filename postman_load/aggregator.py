from __future__ import annotations

import collections
import copy
import math
import threading
from dataclasses import dataclass, field

import pandas as pd

RECORD_COLUMNS = ["request_name", "status_code", "latency_ms"]


@dataclass(frozen=True)
class ExecutionRecord:
    request_name: str
    status_code: int
    latency_ms: float


@dataclass(frozen=True)
class RequestSummary:
    """Latency statistics and status-code histogram for one request name."""

    request_name: str
    average: int
    minimum: float
    maximum: float
    code_counts: dict[int, int] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return sum(self.code_counts.values())


class MetricsAggregator:
    """Accumulates execution records per request name from concurrent ticks."""

    def __init__(self) -> None:
        self._records_lock = threading.Lock()
        # request name -> [(status_code, latency_ms), ...]
        self._store: dict[str, list[tuple[int, float]]] = {}

    def append(self, record: ExecutionRecord) -> None:
        with self._records_lock:
            self._store.setdefault(record.request_name, []).append(
                (record.status_code, record.latency_ms)
            )

    def extend(self, records: list[ExecutionRecord]) -> None:
        """Append a batch of records, one lock acquisition per record."""
        for record in records:
            self.append(record)

    def snapshot(self) -> dict[str, list[tuple[int, float]]]:
        with self._records_lock:
            return copy.deepcopy(self._store)

    def total_records(self) -> int:
        with self._records_lock:
            return sum(len(entries) for entries in self._store.values())

    def summarize(self) -> list[RequestSummary]:
        """Derive per-request statistics in first-seen request order.

        Only names that received at least one record appear, so an empty
        store yields an empty list.
        """
        summaries = []
        for name, entries in self.snapshot().items():
            latencies = [latency for _, latency in entries]
            counter = collections.Counter(code for code, _ in entries)
            summaries.append(
                RequestSummary(
                    request_name=name,
                    average=round_half_up(sum(latencies) / len(latencies)),
                    minimum=min(latencies),
                    maximum=max(latencies),
                    code_counts=dict(counter),
                )
            )
        return summaries

    def build_dataframe(self) -> pd.DataFrame:
        rows = [
            {"request_name": name, "status_code": code, "latency_ms": latency}
            for name, entries in self.snapshot().items()
            for code, latency in entries
        ]
        if not rows:
            return pd.DataFrame(columns=RECORD_COLUMNS)
        return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


__all__ = [
    "ExecutionRecord",
    "MetricsAggregator",
    "RequestSummary",
    "round_half_up",
]
