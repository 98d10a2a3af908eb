"""Core type definitions for the crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256
from typing import Any, Iterable, Mapping

from .constants import TRACKED_RESOURCE_TYPES


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


class FrontierStatus(str, Enum):
    """The one state a known URL is in."""

    PENDING = "pending"
    VISITED = "visited"
    UNREACHABLE = "unreachable"
    EXTERNAL = "external"


class FetchBackend(str, Enum):
    """Transport used to navigate to pages."""

    SELENIUM = "selenium"
    REQUESTS = "requests"


class MetaType(str, Enum):
    """Metadata categories that can be collected for crawled pages."""

    ANCHORS = "anchors"
    RESOURCES = "resources"
    LIGHTHOUSE = "lighthouse"


class RedirectScope(str, Enum):
    """Which URL decides whether a navigated page is scraped for links.

    `requested` classifies by the URL popped from the frontier, `final` by the
    URL the navigation ended on.
    """

    REQUESTED = "requested"
    FINAL = "final"


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def page_hash(html: str) -> str:
    """Digest of rendered page content, used for duplicate detection."""

    return sha256(html.encode("utf-8", errors="replace")).hexdigest()


@dataclass(slots=True)
class NavigationResult:
    """What the transport observed when loading one URL."""

    requested_url: str
    status: int
    final_url: str
    redirect_chain: list[str] = field(default_factory=list)
    html: str = ""
    elapsed_ms: int | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def not_found(self) -> bool:
        return self.status == 404


@dataclass(slots=True)
class ExtractedPage:
    """Links and meta fields scraped from a rendered page."""

    anchors: list[str] = field(default_factory=list)
    meta_fields: dict[str, str] = field(default_factory=dict)


class ResourceCollector:
    """Collects sub-resource requests made while one page loads.

    A fresh collector is handed to each `navigate` call and read once it returns.
    """

    def __init__(self, tracked_types: Iterable[str] = TRACKED_RESOURCE_TYPES) -> None:
        self._tracked = tuple(tracked_types)
        self._urls: dict[str, list[str]] = {}
        self.untracked = 0

    def record(self, url: str, resource_type: str) -> bool:
        """Record one request; return False when its type is not tracked."""

        kind = (resource_type or "").strip().lower()
        if kind not in self._tracked:
            self.untracked += 1
            return False
        self._urls.setdefault(kind, []).append(url)
        return True

    def by_type(self) -> dict[str, list[str]]:
        return {kind: list(urls) for kind, urls in self._urls.items()}

    def __len__(self) -> int:
        return sum(len(urls) for urls in self._urls.values())


@dataclass(frozen=True, slots=True)
class CrawlSnapshot:
    """Frontier contents at one instant; the unit of persistence."""

    visited_urls: tuple[str, ...] = ()
    pending_urls: tuple[str, ...] = ()
    external_urls: tuple[str, ...] = ()
    unreachable_urls: tuple[str, ...] = ()

    def to_json(self) -> JSONDict:
        return {
            "visitedUrls": list(self.visited_urls),
            "pendingUrls": list(self.pending_urls),
            "externalUrls": list(self.external_urls),
            "unreachableUrls": list(self.unreachable_urls),
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "CrawlSnapshot":
        def _urls(key: str) -> tuple[str, ...]:
            values = payload.get(key) or []
            if not isinstance(values, list):
                raise ValueError(f"State key {key!r} must be a list, got {type(values).__name__}")
            return tuple(str(value) for value in values if value)

        return cls(
            visited_urls=_urls("visitedUrls"),
            pending_urls=_urls("pendingUrls"),
            external_urls=_urls("externalUrls"),
            unreachable_urls=_urls("unreachableUrls"),
        )


_RECORD_KEYS = ("redirectedFrom", "anchors", "hash", "lighthouse")


@dataclass(slots=True)
class MetadataRecord:
    """Durable per-page record keyed by the final canonical URL."""

    meta_fields: dict[str, str] = field(default_factory=dict)
    redirected_from: list[str] = field(default_factory=list)
    anchors: list[str] = field(default_factory=list)
    hash: str | None = None
    lighthouse: dict[str, float | None] | None = None
    resources: dict[str, list[str]] = field(default_factory=dict)

    @property
    def title(self) -> str | None:
        return self.meta_fields.get("title")

    def to_json(self) -> JSONDict:
        payload: JSONDict = dict(self.meta_fields)
        for kind, urls in self.resources.items():
            payload[kind] = list(urls)
        payload["redirectedFrom"] = list(self.redirected_from)
        payload["anchors"] = list(self.anchors)
        payload["hash"] = self.hash
        if self.lighthouse is not None:
            payload["lighthouse"] = dict(self.lighthouse)
        return payload

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "MetadataRecord":
        meta_fields: dict[str, str] = {}
        resources: dict[str, list[str]] = {}
        for key, value in payload.items():
            if key in _RECORD_KEYS:
                continue
            if key in TRACKED_RESOURCE_TYPES and isinstance(value, list):
                resources[key] = [str(item) for item in value]
            elif value is not None:
                meta_fields[str(key)] = str(value)

        lighthouse = payload.get("lighthouse")
        return cls(
            meta_fields=meta_fields,
            redirected_from=[str(url) for url in payload.get("redirectedFrom") or []],
            anchors=[str(url) for url in payload.get("anchors") or []],
            hash=payload.get("hash"),
            lighthouse=dict(lighthouse) if isinstance(lighthouse, Mapping) else None,
            resources=resources,
        )


__all__ = [
    "CrawlSnapshot",
    "ExtractedPage",
    "FetchBackend",
    "FrontierStatus",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "MetaType",
    "MetadataRecord",
    "NavigationResult",
    "RedirectScope",
    "ResourceCollector",
    "page_hash",
    "utc_now_iso",
]
