"""HTML extraction: anchors, meta fields, and statically referenced resources."""

from __future__ import annotations

from typing import Iterator

from bs4 import BeautifulSoup

from .constants import META_TAG_NAMES, META_TAG_PREFIXES
from .types import ExtractedPage
from .url import resolve_anchor


def _soup(html: str | bytes) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _meta_key(tag) -> str | None:
    name = (tag.get("name") or "").strip().lower()
    if name in META_TAG_NAMES or any(name.startswith(prefix) for prefix in META_TAG_PREFIXES):
        return name
    prop = (tag.get("property") or "").strip().lower()
    if any(prop.startswith(prefix) for prefix in META_TAG_PREFIXES):
        return prop
    return None


def extract_page(html: str | bytes, *, base_url: str) -> ExtractedPage:
    """Extract absolute anchor hrefs (document order) and SEO meta fields.

    Anchors are resolved against `base_url` but otherwise left raw; duplicates
    are kept since classification and dedup happen downstream.
    """

    soup = _soup(html)

    anchors: list[str] = []
    for element in soup.find_all("a"):
        resolved = resolve_anchor(base_url, element.get("href"))
        if resolved:
            anchors.append(resolved)

    meta_fields: dict[str, str] = {}
    if soup.title is not None and soup.title.string is not None:
        meta_fields["title"] = soup.title.string.strip()
    else:
        meta_fields["title"] = ""

    for tag in soup.find_all("meta"):
        key = _meta_key(tag)
        if key is None or tag.get("content") is None:
            continue
        meta_fields[key] = str(tag.get("content"))

    return ExtractedPage(anchors=anchors, meta_fields=meta_fields)


def iter_static_resources(html: str | bytes, *, base_url: str) -> Iterator[tuple[str, str]]:
    """Yield `(url, resource_type)` for sub-resources referenced in markup.

    Used when the transport cannot observe network requests directly.
    """

    soup = _soup(html)

    for tag in soup.find_all("img"):
        src = resolve_anchor(base_url, tag.get("src"))
        if src:
            yield src, "image"

    for tag in soup.find_all("script"):
        src = resolve_anchor(base_url, tag.get("src"))
        if src:
            yield src, "script"

    for tag in soup.find_all("link"):
        rel = {value.lower() for value in (tag.get("rel") or [])}
        href = resolve_anchor(base_url, tag.get("href"))
        if not href:
            continue
        if "stylesheet" in rel:
            yield href, "stylesheet"
        elif "preload" in rel and (tag.get("as") or "").lower() == "font":
            yield href, "font"

    for tag in soup.find_all(["video", "audio", "source"]):
        src = resolve_anchor(base_url, tag.get("src"))
        if src:
            yield src, "media"


__all__ = [
    "extract_page",
    "iter_static_resources",
]
