"""End-to-end crawl loop orchestration."""

from __future__ import annotations

from enum import Enum
import logging
from pathlib import Path
import time
from typing import Any, Callable

from .audit import LighthouseAuditor
from .classifier import DomainClassifier
from .config import CrawlConfig
from .constants import DEFAULT_OUTPUT_DIR
from .errors import MalformedUrl, NavigationFailed
from .frontier import EnqueueStatus, Frontier
from .metadata import MetadataStore
from .retry import RetryPolicy
from .stats import StatsCollector
from .storage import StateStore
from .transport import Transport, build_transport
from .types import (
    CrawlSnapshot,
    ExtractedPage,
    FrontierStatus,
    MetaType,
    NavigationResult,
    RedirectScope,
    ResourceCollector,
    page_hash,
)


LOGGER = logging.getLogger(__name__)


class PageOutcome(str, Enum):
    """What happened to one pending URL."""

    VISITED = "visited"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class Crawler:
    """Orchestrates frontier, transport, retry policy, metadata, storage, and stats.

    `prepare()` restores and reconciles persisted state; `run()` drains the
    frontier one URL at a time, flushing state after every page.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        output_dir: str | Path = DEFAULT_OUTPUT_DIR,
        transport: Transport | None = None,
        store: StateStore | None = None,
        retry_policy: RetryPolicy | None = None,
        auditor: LighthouseAuditor | None = None,
        stats: StatsCollector | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.classifier = DomainClassifier(
            config.valid_domains,
            include_path_patterns=config.include_paths,
            exclude_path_patterns=config.exclude_paths,
        )

        if auditor is None and config.collects(MetaType.LIGHTHOUSE):
            auditor = LighthouseAuditor(config.lighthouse_binary)
        self.auditor = auditor

        self.store = store or StateStore(output_dir, config.canonical_host)
        self.transport = transport or build_transport(config)
        self.retry_policy = retry_policy or RetryPolicy(
            attempts=config.retry_attempts,
            base_delay_seconds=config.retry_base_delay_seconds,
            exponent=config.retry_exponent,
            sleep=sleep,
        )
        self.stats = stats or StatsCollector()

        self._owns_transport = transport is None
        self._sleep = sleep

        self.frontier: Frontier | None = None
        self.metadata: MetadataStore | None = None

    # ------------------------------------------------------------------
    # Setup

    def prepare(self) -> Frontier:
        """Load persisted files, reconcile them, and return the frontier."""

        if self.frontier is not None:
            return self.frontier

        paths = self.store.paths
        LOGGER.info("State will be saved to %s", paths["state"])

        snapshot = self.store.load_state()
        if snapshot is None:
            LOGGER.info("No previous state found, starting a fresh crawl")
            snapshot = CrawlSnapshot()
        frontier = Frontier.from_snapshot(
            snapshot,
            self.config.canonical_host,
            self.classifier,
            check_externals=self.config.check_externals,
        )

        metadata_urls = None
        if self.config.collects_meta:
            LOGGER.info("Metadata will be saved to %s", paths["metadata"])
            payload = self.store.load_metadata() or {}
            self.metadata = MetadataStore.from_json(payload, canonicalize=frontier.canonicalize)
            metadata_urls = self.metadata.covered_urls()

        report = frontier.reconcile(metadata_urls=metadata_urls, seed_url=self.config.seed_url)
        self.stats.record_reconcile(report)
        LOGGER.info(
            "Resuming with %d pending url(s) (%s)",
            frontier.counts()[FrontierStatus.PENDING.value],
            ", ".join(f"{key}={value}" for key, value in report.to_json().items()),
        )

        self.frontier = frontier
        self._save()
        return frontier

    # ------------------------------------------------------------------
    # Crawl loop

    def run(self) -> dict[str, Any]:
        """Crawl until no URL is pending and return a summary payload."""

        try:
            frontier = self.prepare()
            while frontier.has_pending():
                url = frontier.next_pending()
                if url is None:
                    break
                if self.config.delay_seconds > 0:
                    self._sleep(self.config.delay_seconds)
                self.crawl_one(url)
        finally:
            if self._owns_transport:
                self.transport.close()
            if not self.store.close():
                LOGGER.warning("Some state writes did not complete before shutdown")

        self.stats.record_frontier_snapshot(frontier.counts())
        self.stats.finish()
        return {
            "paths": self.store.paths,
            "counts": frontier.counts(),
            "stats": self.stats.to_json(),
        }

    def crawl_one(self, url: str) -> PageOutcome:
        """Navigate one pending URL and record everything it revealed."""

        frontier = self.prepare()

        try:
            requested_external = frontier.is_external(url)
        except MalformedUrl as exc:
            LOGGER.error("Cannot crawl malformed pending url: %s", exc)
            frontier.record_failure(url)
            self.stats.increment("malformed_pending")
            self._save()
            return PageOutcome.FAILED

        LOGGER.info("%s %s", "Visiting external" if requested_external else "Visiting", url)

        # One collector per attempt; the last one belongs to the accepted response.
        collectors: list[ResourceCollector] = []

        def navigate_once(target: str) -> NavigationResult:
            attempt_collector = None
            if self.config.collects(MetaType.RESOURCES):
                attempt_collector = ResourceCollector()
                collectors.append(attempt_collector)
            return self.transport.navigate(target, collector=attempt_collector)

        try:
            result = self.retry_policy.run(navigate_once, url)
        except NavigationFailed as exc:
            LOGGER.error("Could not navigate to %s (%s)", url, exc.last_error)
            self.stats.record_navigation_failed(exc.last_error)
            observed = [] if exc.result is None else [*exc.result.redirect_chain, exc.result.final_url]
            frontier.record_failure(url, observed)
            self._save()
            return PageOutcome.FAILED

        self.stats.record_navigation(result)

        if result.not_found:
            LOGGER.error("Could not navigate to %s (%d)", url, result.status)
            frontier.record_failure(url, [*result.redirect_chain, result.final_url])
            self._save()
            return PageOutcome.NOT_FOUND

        frontier.record_visit(url, [*result.redirect_chain, result.final_url])

        if self._is_external_page(result, requested_external):
            self._save()
            return PageOutcome.VISITED

        page = self.transport.extract(result)

        if self.metadata is not None:
            self._merge_metadata(result, page, collectors[-1] if collectors else None)

        discovered = frontier.discover_many(page.anchors)
        self.stats.record_enqueue_many(discovered)
        for item in discovered:
            if item.status == EnqueueStatus.ENQUEUED:
                LOGGER.debug("Discovered %s", item.normalized_url)

        self._save()
        return PageOutcome.VISITED

    # ------------------------------------------------------------------
    # Helpers

    def _is_external_page(self, result: NavigationResult, requested_external: bool) -> bool:
        if self.config.redirect_scope != RedirectScope.FINAL:
            return requested_external
        try:
            return self.classifier.is_external(result.final_url)
        except MalformedUrl:
            return True

    def _merge_metadata(
        self,
        result: NavigationResult,
        page: ExtractedPage,
        collector: ResourceCollector | None,
    ) -> None:
        frontier = self.frontier
        metadata = self.metadata
        assert frontier is not None and metadata is not None

        try:
            final_key = frontier.canonicalize(result.final_url)
        except MalformedUrl as exc:
            LOGGER.warning("Not recording metadata for malformed final url: %s", exc)
            return

        lighthouse = None
        if self.auditor is not None and final_key not in metadata:
            lighthouse = self.auditor.audit(result.final_url)
            self.stats.record_lighthouse(lighthouse is not None)

        resources = collector.by_type() if collector is not None else {}
        if collector is not None:
            self.stats.record_resources(resources)
            if collector.untracked:
                LOGGER.debug("Ignored %d untracked request(s) on %s", collector.untracked, final_key)

        metadata.merge_visit(
            final_key,
            redirect_chain=frontier.canonical_keys(result.redirect_chain),
            page=page,
            resources=resources,
            content_hash=page_hash(result.html),
            lighthouse=lighthouse,
        )
        self.stats.record_metadata(len(metadata))

    def _save(self) -> None:
        if self.frontier is None:
            return
        self.store.save_state(self.frontier.snapshot())
        if self.metadata is not None:
            self.store.save_metadata(self.metadata.to_json())


__all__ = [
    "Crawler",
    "PageOutcome",
]
