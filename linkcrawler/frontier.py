"""Crawl frontier: the state machine over known URLs.

Every known URL maps to exactly one `FrontierStatus`. All state changes go
through `Frontier._transition`, which checks the prior state, so a URL can
never be pending and visited at the same time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Collection, Iterable

from .classifier import DomainClassifier
from .errors import InvalidTransition, MalformedUrl
from .types import CrawlSnapshot, FrontierStatus
from .url import is_http_url, normalize_external_url, normalize_url


LOGGER = logging.getLogger(__name__)

PENDING = FrontierStatus.PENDING
VISITED = FrontierStatus.VISITED
UNREACHABLE = FrontierStatus.UNREACHABLE
EXTERNAL = FrontierStatus.EXTERNAL

# Prior states (None = unknown URL) from which each state may be entered.
# Individual operations narrow this further.
_ALLOWED_SOURCES: dict[FrontierStatus, frozenset[FrontierStatus | None]] = {
    PENDING: frozenset({None, UNREACHABLE, VISITED, EXTERNAL}),
    VISITED: frozenset({None, PENDING, EXTERNAL, UNREACHABLE}),
    UNREACHABLE: frozenset({None, PENDING, EXTERNAL}),
    EXTERNAL: frozenset({None}),
}

# When a persisted snapshot lists a URL twice, the first state here wins.
_LOAD_PRECEDENCE = (VISITED, UNREACHABLE, PENDING, EXTERNAL)


class EnqueueStatus(str, Enum):
    """Result status for one discovered anchor."""

    ENQUEUED = "enqueued"
    EXTERNAL = "external"
    SKIPPED_KNOWN = "skipped_known"
    SKIPPED_MALFORMED = "skipped_malformed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one discovery attempt."""

    status: EnqueueStatus
    url: str
    normalized_url: str | None = None


@dataclass(slots=True)
class ReconcileReport:
    """What startup reconciliation changed."""

    retried_unreachable: int = 0
    requeued_missing_metadata: int = 0
    requeued_externals: int = 0
    renormalized: int = 0
    seeded: bool = False

    def to_json(self) -> dict[str, int | bool]:
        return {
            "retried_unreachable": self.retried_unreachable,
            "requeued_missing_metadata": self.requeued_missing_metadata,
            "requeued_externals": self.requeued_externals,
            "renormalized": self.renormalized,
            "seeded": self.seeded,
        }


class Frontier:
    """Partition of known URLs into pending / visited / unreachable / external.

    - Internal URLs are keyed by their canonical form (`normalize_url`).
    - External URLs are keyed by their raw form.
    - Pending URLs are handed out in discovery order.
    """

    def __init__(
        self,
        canonical_host: str,
        classifier: DomainClassifier,
        *,
        check_externals: bool = False,
    ) -> None:
        self.canonical_host = canonical_host
        self.classifier = classifier
        self.check_externals = check_externals

        self._status: dict[str, FrontierStatus] = {}
        # Ordered index over pending URLs; maintained only by `_set`.
        self._pending: dict[str, None] = {}

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CrawlSnapshot,
        canonical_host: str,
        classifier: DomainClassifier,
        *,
        check_externals: bool = False,
    ) -> "Frontier":
        """Rebuild a frontier from persisted state."""

        frontier = cls(canonical_host, classifier, check_externals=check_externals)
        urls_by_status = {
            VISITED: snapshot.visited_urls,
            UNREACHABLE: snapshot.unreachable_urls,
            PENDING: snapshot.pending_urls,
            EXTERNAL: snapshot.external_urls,
        }
        for status in _LOAD_PRECEDENCE:
            for url in urls_by_status[status]:
                existing = frontier._status.get(url)
                if existing is not None:
                    if existing != status:
                        LOGGER.warning(
                            "Persisted state lists %s as both %s and %s; keeping %s",
                            url,
                            existing.value,
                            status.value,
                            existing.value,
                        )
                    continue
                frontier._set(url, status)
        return frontier

    # ------------------------------------------------------------------
    # Inspection

    def __contains__(self, url: object) -> bool:
        return url in self._status

    def __len__(self) -> int:
        return len(self._status)

    def status_of(self, url: str) -> FrontierStatus | None:
        return self._status.get(url)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def next_pending(self) -> str | None:
        """Oldest pending URL. It stays pending until its outcome is recorded."""

        return next(iter(self._pending), None)

    def urls_in(self, status: FrontierStatus) -> list[str]:
        if status == PENDING:
            return list(self._pending)
        return [url for url, value in self._status.items() if value == status]

    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in FrontierStatus}
        for status in self._status.values():
            counts[status.value] += 1
        return counts

    def snapshot(self) -> CrawlSnapshot:
        """Immutable copy of the current state for persistence."""

        return CrawlSnapshot(
            visited_urls=tuple(self.urls_in(VISITED)),
            pending_urls=tuple(self._pending),
            external_urls=tuple(self.urls_in(EXTERNAL)),
            unreachable_urls=tuple(self.urls_in(UNREACHABLE)),
        )

    def is_external(self, url: str) -> bool:
        return self.classifier.is_external(url)

    def canonicalize(self, url: str) -> str:
        """Normalize with the normalizer matching the URL's classification."""

        if self.classifier.is_external(url):
            return normalize_external_url(url)
        return normalize_url(url, self.canonical_host)

    def canonical_keys(self, urls: Iterable[str]) -> list[str]:
        """Canonicalize navigation URLs, dropping malformed ones and duplicates."""

        keys: list[str] = []
        for url in urls:
            if not url:
                continue
            try:
                key = self.canonicalize(url)
            except MalformedUrl as exc:
                LOGGER.warning("Ignoring malformed navigation URL: %s", exc)
                continue
            if key not in keys:
                keys.append(key)
        return keys

    # ------------------------------------------------------------------
    # Transitions

    def add_seed(self, url: str) -> bool:
        """Queue the seed URL unless it is already known."""

        normalized = normalize_url(url, self.canonical_host)
        if normalized in self._status:
            return False
        self._transition(normalized, PENDING, allowed_from={None})
        return True

    def discover(self, anchor: str) -> EnqueueResult:
        """Classify one anchor found on a page and record it.

        Malformed anchors are skipped and never enter any state.
        """

        try:
            external = self.classifier.is_external(anchor)
            normalized = (
                normalize_external_url(anchor)
                if external
                else normalize_url(anchor, self.canonical_host)
            )
        except MalformedUrl as exc:
            LOGGER.debug("Skipping malformed anchor: %s", exc)
            return EnqueueResult(EnqueueStatus.SKIPPED_MALFORMED, url=anchor)

        if external:
            if anchor in self._status:
                return EnqueueResult(EnqueueStatus.SKIPPED_KNOWN, url=anchor, normalized_url=normalized)
            self._transition(anchor, EXTERNAL, allowed_from={None})
            if self.check_externals and is_http_url(anchor):
                self._transition(anchor, PENDING, allowed_from={EXTERNAL})
            return EnqueueResult(EnqueueStatus.EXTERNAL, url=anchor, normalized_url=normalized)

        if normalized in self._status:
            return EnqueueResult(EnqueueStatus.SKIPPED_KNOWN, url=anchor, normalized_url=normalized)
        self._transition(normalized, PENDING, allowed_from={None})
        return EnqueueResult(EnqueueStatus.ENQUEUED, url=anchor, normalized_url=normalized)

    def discover_many(self, anchors: Iterable[str]) -> list[EnqueueResult]:
        return [self.discover(anchor) for anchor in anchors if anchor]

    def record_visit(self, requested_url: str, observed_urls: Iterable[str] = ()) -> list[str]:
        """Mark a successful navigation.

        `requested_url` is the pending key that was navigated; `observed_urls`
        are the raw redirect chain and final URL reported by the transport.
        Returns the keys that became visited.
        """

        self._transition(requested_url, VISITED, allowed_from={PENDING})
        visited = [requested_url]
        for url in self.canonical_keys(observed_urls):
            current = self._status.get(url)
            if current == VISITED:
                continue
            self._transition(url, VISITED, allowed_from={None, PENDING, EXTERNAL, UNREACHABLE})
            visited.append(url)
        return visited

    def record_failure(self, requested_url: str, observed_urls: Iterable[str] = ()) -> list[str]:
        """Mark a navigation that failed or answered 404.

        URLs already visited earlier in the run stay visited.
        """

        self._transition(requested_url, UNREACHABLE, allowed_from={PENDING})
        unreachable = [requested_url]
        for url in self.canonical_keys(observed_urls):
            current = self._status.get(url)
            if current in {VISITED, UNREACHABLE}:
                continue
            self._transition(url, UNREACHABLE, allowed_from={None, PENDING, EXTERNAL})
            unreachable.append(url)
        return unreachable

    def reconcile(
        self,
        *,
        metadata_urls: Collection[str] | None = None,
        seed_url: str | None = None,
    ) -> ReconcileReport:
        """Run once at startup, before the crawl loop.

        - Unreachable URLs are retried.
        - With `metadata_urls` (metadata collection enabled), internal visited
          URLs without a record go back to pending.
        - With check-externals, external http(s) URLs are queued.
        - Internal visited/pending URLs are re-normalized against the current
          canonical host.
        """

        report = ReconcileReport()

        for url in self.urls_in(UNREACHABLE):
            self._transition(url, PENDING, allowed_from={UNREACHABLE})
            report.retried_unreachable += 1

        if metadata_urls is not None:
            for url in self.urls_in(VISITED):
                if url in metadata_urls or self._classify_quietly(url) is not False:
                    continue
                self._transition(url, PENDING, allowed_from={VISITED})
                report.requeued_missing_metadata += 1
            if report.requeued_missing_metadata:
                LOGGER.info(
                    "Re-crawling %d urls as their metadata was not crawled",
                    report.requeued_missing_metadata,
                )

        if self.check_externals:
            for url in self.urls_in(EXTERNAL):
                if is_http_url(url):
                    self._transition(url, PENDING, allowed_from={EXTERNAL})
                    report.requeued_externals += 1

        report.renormalized = self._renormalize()

        if seed_url is not None:
            report.seeded = self.add_seed(seed_url)

        return report

    # ------------------------------------------------------------------
    # Internals

    def _classify_quietly(self, url: str) -> bool | None:
        """Return is-external, or None when the URL cannot be parsed."""

        try:
            return self.classifier.is_external(url)
        except MalformedUrl:
            return None

    def _renormalize(self) -> int:
        changed = 0
        for status in (VISITED, PENDING):
            for url in self.urls_in(status):
                if self._classify_quietly(url) is not False:
                    continue
                normalized = normalize_url(url, self.canonical_host)
                if normalized == url:
                    continue

                self._set(url, None)
                existing = self._status.get(normalized)
                if existing is None or (existing == PENDING and status == VISITED):
                    self._set(normalized, status)
                changed += 1
        return changed

    def _transition(
        self,
        url: str,
        target: FrontierStatus,
        *,
        allowed_from: Collection[FrontierStatus | None],
    ) -> None:
        current = self._status.get(url)
        if current not in allowed_from or current not in _ALLOWED_SOURCES[target]:
            raise InvalidTransition(url, current, target)
        self._set(url, target)
        LOGGER.debug(
            "%s: %s -> %s",
            url,
            "new" if current is None else current.value,
            target.value,
        )

    def _set(self, url: str, status: FrontierStatus | None) -> None:
        if status is None:
            self._status.pop(url, None)
        else:
            self._status[url] = status

        if status == PENDING:
            self._pending[url] = None
        else:
            self._pending.pop(url, None)


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
    "ReconcileReport",
]
