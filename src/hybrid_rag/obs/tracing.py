"""Per-query route traces and latency accounting."""

from __future__ import annotations

import time
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone

from hybrid_rag.types import RouterResult


@dataclass(slots=True)
class RouteTrace:
    trace_id: str
    timestamp_utc: str
    query: str
    owner_id: str
    file_id: str | None
    search_type: str
    source_count: int | None
    latency_ms: float


class RouteTraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: dict[str, RouteTrace] = {}
        self._max_records = max_records

    def record(
        self,
        *,
        query: str,
        owner_id: str,
        file_id: str | None,
        result: RouterResult,
        latency_ms: float,
    ) -> RouteTrace:
        trace = RouteTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            query=query,
            owner_id=owner_id,
            file_id=file_id,
            search_type=result.search_type.value,
            source_count=result.source_count,
            latency_ms=latency_ms,
        )
        self._records[trace.trace_id] = trace
        while len(self._records) > self._max_records:
            oldest = next(iter(self._records))
            del self._records[oldest]
        return trace

    def get(self, trace_id: str) -> RouteTrace:
        trace = self._records.get(trace_id)
        if trace is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return trace

    def list_recent(self, limit: int = 20) -> list[RouteTrace]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, object]:
        """Aggregate request counts and latency for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "by_search_type": {},
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_requests": total,
            "by_search_type": dict(Counter(record.search_type for record in records)),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
        }


class Timer:
    """Simple context timer."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
