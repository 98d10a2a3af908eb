"""Per-page metadata records and their merge rules.

Content fields are first-write-wins; lineage (`redirectedFrom`) and anchor
lists only ever grow.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, Mapping

from .errors import MalformedUrl
from .types import ExtractedPage, JSONDict, MetadataRecord


LOGGER = logging.getLogger(__name__)


def merge_unique(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    """Concatenate preserving first occurrence order, dropping duplicates."""

    out: list[str] = []
    seen: set[str] = set()
    for value in [*existing, *incoming]:
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def canonical_anchors(
    anchors: Iterable[str],
    canonicalize: Callable[[str], str],
) -> list[str]:
    """Deduplicate anchors by canonical form and return the canonical forms."""

    out: list[str] = []
    seen: set[str] = set()
    for anchor in anchors:
        if not anchor:
            continue
        try:
            key = canonicalize(anchor)
        except MalformedUrl as exc:
            LOGGER.debug("Dropping malformed anchor from metadata: %s", exc)
            continue
        if key in seen:
            continue
        seen.add(key)
        out.append(key)
    return out


class MetadataStore:
    """In-memory `final_url -> MetadataRecord` mapping owned by the crawl loop."""

    def __init__(
        self,
        records: Mapping[str, MetadataRecord] | None = None,
        *,
        canonicalize: Callable[[str], str] | None = None,
    ) -> None:
        self._records: dict[str, MetadataRecord] = dict(records or {})
        self._canonicalize = canonicalize

    @classmethod
    def from_json(
        cls,
        payload: Mapping[str, Any],
        *,
        canonicalize: Callable[[str], str] | None = None,
    ) -> "MetadataStore":
        records: dict[str, MetadataRecord] = {}
        for url, raw in payload.items():
            if not isinstance(raw, Mapping):
                LOGGER.warning("Skipping metadata entry for %s: not an object", url)
                continue
            records[str(url)] = MetadataRecord.from_json(raw)
        return cls(records, canonicalize=canonicalize)

    def to_json(self) -> JSONDict:
        """Fresh JSON payload; safe to hand to a background writer."""

        return {url: record.to_json() for url, record in self._records.items()}

    def __contains__(self, url: object) -> bool:
        return url in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def get(self, url: str) -> MetadataRecord | None:
        return self._records.get(url)

    def items(self) -> list[tuple[str, MetadataRecord]]:
        return list(self._records.items())

    def covered_urls(self) -> set[str]:
        """Final URLs with a record plus every URL that redirected to one."""

        covered = set(self._records)
        for record in self._records.values():
            covered.update(record.redirected_from)
        return covered

    def merge_visit(
        self,
        final_url: str,
        *,
        redirect_chain: Iterable[str] = (),
        page: ExtractedPage | None = None,
        resources: Mapping[str, list[str]] | None = None,
        content_hash: str | None = None,
        lighthouse: Mapping[str, float | None] | None = None,
    ) -> MetadataRecord:
        """Create or update the record for `final_url` after one visit."""

        lineage = [url for url in redirect_chain if url and url != final_url]
        anchors = list(page.anchors) if page is not None else []
        if self._canonicalize is not None:
            anchors = canonical_anchors(anchors, self._canonicalize)

        record = self._records.get(final_url)
        if record is None:
            record = MetadataRecord(
                meta_fields=dict(page.meta_fields) if page is not None else {},
                anchors=merge_unique([], anchors),
                hash=content_hash,
                lighthouse=dict(lighthouse) if lighthouse is not None else None,
                resources={kind: list(urls) for kind, urls in (resources or {}).items()},
            )
            self._records[final_url] = record
        else:
            record.anchors = merge_unique(record.anchors, anchors)
            if record.hash is None:
                record.hash = content_hash
            if record.lighthouse is None and lighthouse is not None:
                record.lighthouse = dict(lighthouse)

        record.redirected_from = merge_unique(record.redirected_from, lineage)
        return record


__all__ = [
    "MetadataStore",
    "canonical_anchors",
    "merge_unique",
]
