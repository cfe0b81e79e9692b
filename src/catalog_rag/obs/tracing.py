"""Search tracing and latency accounting."""

from __future__ import annotations

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(slots=True)
class SearchTrace:
    trace_id: str
    timestamp_utc: str
    query: str
    backend: str
    domain_filter: str | None
    candidate_count: int
    result_ids: list[str]
    avg_data_quality: float
    latency_ms: float


class SearchTraceStore:
    """Bounded in-memory store of recent searches for the metrics endpoint."""

    def __init__(self, *, max_records: int = 1000) -> None:
        self._records: deque[SearchTrace] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        query: str,
        backend: str,
        domain_filter: str | None,
        candidate_count: int,
        result_ids: list[str],
        avg_data_quality: float,
        latency_ms: float,
    ) -> SearchTrace:
        record = SearchTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            query=query,
            backend=backend,
            domain_filter=domain_filter,
            candidate_count=candidate_count,
            result_ids=result_ids,
            avg_data_quality=avg_data_quality,
            latency_ms=latency_ms,
        )
        with self._lock:
            self._records.append(record)
        return record

    def get(self, trace_id: str) -> SearchTrace:
        with self._lock:
            for record in self._records:
                if record.trace_id == trace_id:
                    return record
        raise KeyError(f"Trace not found: {trace_id}")

    def list_recent(self, limit: int = 20) -> list[SearchTrace]:
        with self._lock:
            records = list(self._records)
        return records[-limit:] if limit > 0 else []

    def summary(self) -> dict[str, float | int]:
        """Aggregate latency and hit-rate figures across recorded searches."""
        with self._lock:
            records = list(self._records)
        total = len(records)
        if total == 0:
            return {
                "total_searches": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "empty_result_rate": 0.0,
                "avg_result_count": 0.0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        empty = sum(1 for record in records if not record.result_ids)
        return {
            "total_searches": total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "empty_result_rate": empty / total,
            "avg_result_count": sum(len(record.result_ids) for record in records) / total,
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
