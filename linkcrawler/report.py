"""Broken-link report derived from the persisted state and metadata files."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable, Iterator, Mapping

from .errors import MalformedUrl
from .types import CrawlSnapshot, JSONDict, MetadataRecord
from .url import normalize_external_url


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PageLinkReport:
    """Problematic anchors found on one crawled page.

    `bad` is part of the report format but nothing populates it yet.
    """

    url: str
    broken: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    unvisited: list[str] = field(default_factory=list)
    bad: list[str] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.broken or self.pending or self.unvisited or self.bad)

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "broken": list(self.broken),
            "pending": list(self.pending),
            "unvisited": list(self.unvisited),
            "bad": list(self.bad),
        }


def _comparable(urls: Iterable[str]) -> set[str]:
    out: set[str] = set()
    for url in urls:
        out.add(url)
        try:
            out.add(normalize_external_url(url))
        except MalformedUrl:
            continue
    return out


@dataclass(frozen=True, slots=True)
class _SnapshotIndex:
    pending: set[str]
    unreachable: set[str]
    known: set[str]

    @classmethod
    def build(cls, snapshot: CrawlSnapshot) -> "_SnapshotIndex":
        pending = _comparable(snapshot.pending_urls)
        unreachable = _comparable(snapshot.unreachable_urls)
        known = pending | unreachable
        known |= _comparable(snapshot.visited_urls)
        known |= _comparable(snapshot.external_urls)
        return cls(pending=pending, unreachable=unreachable, known=known)


def _append_unique(target: list[str], url: str) -> None:
    if url not in target:
        target.append(url)


def _audit(url: str, anchors: Iterable[str], index: _SnapshotIndex) -> PageLinkReport:
    report = PageLinkReport(url=url)
    for anchor in anchors:
        try:
            anchor = normalize_external_url(anchor)
        except MalformedUrl:
            continue

        if anchor in index.pending:
            _append_unique(report.pending, anchor)
        elif anchor in index.unreachable:
            _append_unique(report.broken, anchor)
        elif anchor not in index.known:
            _append_unique(report.unvisited, anchor)
    return report


def audit_page_links(url: str, anchors: Iterable[str], snapshot: CrawlSnapshot) -> PageLinkReport:
    """Classify one page's anchors against a state snapshot."""

    return _audit(url, anchors, _SnapshotIndex.build(snapshot))


def iter_link_reports(
    metadata_payload: Mapping[str, Any],
    snapshot: CrawlSnapshot,
    *,
    only_issues: bool = True,
) -> Iterator[PageLinkReport]:
    """Yield a report per metadata record, in file order."""

    index = _SnapshotIndex.build(snapshot)
    for url, raw in metadata_payload.items():
        if not isinstance(raw, Mapping):
            LOGGER.warning("Skipping metadata entry for %s: not an object", url)
            continue
        record = MetadataRecord.from_json(raw)
        report = _audit(str(url), record.anchors, index)
        if only_issues and not report.has_issues:
            continue
        yield report


def build_link_report(
    metadata_payload: Mapping[str, Any],
    snapshot: CrawlSnapshot,
    *,
    only_issues: bool = True,
) -> list[PageLinkReport]:
    return list(iter_link_reports(metadata_payload, snapshot, only_issues=only_issues))


def format_link_report(report: PageLinkReport) -> str:
    """Plain-text block for one page, one anchor per line."""

    lines = [f"broken links on {report.url} :"]
    lines.extend(f"\t404: {url}" for url in report.broken)
    lines.extend(f"\tPENDING: {url}" for url in report.pending)
    lines.extend(f"\tNO META: {url}" for url in report.unvisited)
    lines.extend(f"\tBAD URL: {url!r}" for url in report.bad)
    return "\n".join(lines)


__all__ = [
    "PageLinkReport",
    "audit_page_links",
    "build_link_report",
    "format_link_report",
    "iter_link_reports",
]
