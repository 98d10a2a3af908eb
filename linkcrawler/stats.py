"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Iterable, Mapping

from .frontier import EnqueueResult, EnqueueStatus, ReconcileReport
from .types import NavigationResult, utc_now_iso


class StatsCollector:
    """Collect and summarize crawler runtime statistics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started_at = utc_now_iso()
        self.finished_at: str | None = None

        self._pages = {"visited": 0, "unreachable": 0, "not_found": 0, "navigation_failed": 0}
        self._enqueue_counts: dict[str, int] = defaultdict(int)
        self._status_code_counts: dict[str, int] = defaultdict(int)
        self._error_type_counts: dict[str, int] = defaultdict(int)
        self._resource_counts: dict[str, int] = defaultdict(int)
        self._elapsed_ms_total = 0
        self._elapsed_samples = 0

        self._metadata_records = 0
        self._lighthouse = {"ok": 0, "error": 0}
        self._reconcile: dict[str, int | bool] = {}
        self._frontier_snapshot: dict[str, int] = {}
        self._custom_counters: dict[str, int] = defaultdict(int)

    def record_navigation(self, result: NavigationResult) -> None:
        """Record one navigation that produced a response."""

        with self._lock:
            self._status_code_counts[str(result.status)] += 1
            if result.elapsed_ms is not None:
                self._elapsed_ms_total += int(result.elapsed_ms)
                self._elapsed_samples += 1
            if result.ok:
                self._pages["visited"] += 1
            elif result.not_found:
                self._pages["not_found"] += 1
                self._pages["unreachable"] += 1

    def record_navigation_failed(self, error: BaseException | None) -> None:
        with self._lock:
            self._pages["navigation_failed"] += 1
            self._pages["unreachable"] += 1
            err_type = error.__class__.__name__ if error is not None else "Unknown"
            self._error_type_counts[err_type] += 1

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one anchor classification outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            self._enqueue_counts[status.value] += 1

    def record_enqueue_many(self, results: Iterable[EnqueueResult]) -> None:
        for result in results:
            self.record_enqueue(result)

    def record_resources(self, by_type: Mapping[str, list[str]]) -> None:
        with self._lock:
            for kind, urls in by_type.items():
                self._resource_counts[kind] += len(urls)

    def record_metadata(self, total_records: int) -> None:
        with self._lock:
            self._metadata_records = total_records

    def record_lighthouse(self, ok: bool) -> None:
        with self._lock:
            self._lighthouse["ok" if ok else "error"] += 1

    def record_reconcile(self, report: ReconcileReport) -> None:
        with self._lock:
            self._reconcile = report.to_json()

    def record_frontier_snapshot(self, counts: Mapping[str, int]) -> None:
        """Attach latest frontier counts for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(counts)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        with self._lock:
            self._custom_counters[name] += value

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            if self.finished_at is None:
                self.finished_at = utc_now_iso()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self.started_at)
            end = _parse_iso_utc(self.finished_at) if self.finished_at else datetime.now(timezone.utc)
            duration_seconds = max(0.0, (end - start).total_seconds())

            navigated = self._pages["visited"] + self._pages["unreachable"]
            elapsed_avg = (
                self._elapsed_ms_total / self._elapsed_samples if self._elapsed_samples > 0 else 0.0
            )

            return {
                "started_at": self.started_at,
                "finished_at": self.finished_at,
                "duration_seconds": duration_seconds,
                "pages": dict(self._pages),
                "pages_per_second": navigated / duration_seconds if duration_seconds > 0 else 0.0,
                "anchors": dict(self._enqueue_counts),
                "navigation": {
                    "status_code_counts": dict(self._status_code_counts),
                    "error_type_counts": dict(self._error_type_counts),
                    "elapsed_ms_total": self._elapsed_ms_total,
                    "elapsed_ms_avg": elapsed_avg,
                },
                "metadata": {
                    "records": self._metadata_records,
                    "resource_counts": dict(self._resource_counts),
                    "lighthouse": dict(self._lighthouse),
                },
                "reconcile": dict(self._reconcile),
                "frontier": dict(self._frontier_snapshot),
                "custom_counters": dict(self._custom_counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
