"""URL normalization and parsing helpers.

Internal URLs share one canonical origin: `normalize_url` forces https (except
on loopback hosts), rewrites the host, and drops the fragment. External URLs
only lose their fragment, since nothing is known about how a third-party site
canonicalizes its URLs.
"""

from __future__ import annotations

import re
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from .constants import LOOPBACK_HOSTS
from .errors import MalformedUrl


HTTP_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
DEFAULT_PORTS = {"http": 80, "https": 443}


def split_url(url: str) -> SplitResult:
    """Parse an absolute URL or raise `MalformedUrl`."""

    if not isinstance(url, str):
        raise MalformedUrl(repr(url), "not a string")

    raw = url.strip()
    if not raw:
        raise MalformedUrl(url, "empty")

    try:
        parsed = urlsplit(raw)
        # Accessing `port` validates it; urlsplit alone does not.
        parsed.port
    except ValueError as exc:
        raise MalformedUrl(url, str(exc)) from exc

    if not parsed.scheme:
        raise MalformedUrl(url, "missing scheme")
    if not parsed.netloc or not parsed.hostname:
        raise MalformedUrl(url, "missing host")
    return parsed


def _format_host(hostname: str, port: int | None, scheme: str) -> str:
    host = hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return host
    return f"{host}:{port}"


def canonical_host_from_url(url: str) -> str:
    """Return the `host[:port]` that internal URLs are rewritten to."""

    parsed = split_url(url)
    return _format_host(parsed.hostname or "", parsed.port, parsed.scheme.lower())


def is_loopback_host(hostname: str | None) -> bool:
    return (hostname or "").lower().strip("[]") in LOOPBACK_HOSTS


def normalize_url(url: str, canonical_host: str) -> str:
    """Canonicalize an internal URL.

    Applied in order: upgrade http to https unless `canonical_host` is a
    loopback development host, rewrite the host to `canonical_host`, clear the
    fragment. Normalizing an already-normalized URL is a no-op.
    """

    parsed = split_url(url)
    scheme = parsed.scheme.lower()
    # Decided by the host the URL ends up with, not the one it came in with.
    if scheme == "http" and not is_loopback_host(urlsplit(f"//{canonical_host}").hostname):
        scheme = "https"

    userinfo, has_userinfo, _ = parsed.netloc.rpartition("@")
    netloc = f"{userinfo}@{canonical_host}" if has_userinfo else canonical_host

    return urlunsplit((scheme, netloc, parsed.path or "/", parsed.query, ""))


def normalize_external_url(url: str) -> str:
    """Canonicalize an external URL: only the fragment is removed."""

    parsed = split_url(url)
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path or "/", parsed.query, ""))


def origin_of(url: str) -> str:
    """Return `scheme://host[:port]` with http aliased to https."""

    parsed = split_url(url)
    scheme = parsed.scheme.lower()
    port = parsed.port
    if scheme == "http":
        scheme = "https"
        if port == DEFAULT_PORTS["http"]:
            port = None
    return f"{scheme}://{_format_host(parsed.hostname or '', port, scheme)}"


def is_http_url(url: str) -> bool:
    """Return True if URL is absolute with an http(s) scheme."""

    try:
        parsed = split_url(url)
    except MalformedUrl:
        return False
    return parsed.scheme.lower() in HTTP_SCHEMES


def resolve_anchor(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against the page it was found on.

    Returns None for empty, fragment-only, and non-navigational hrefs.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        return urljoin(base_url, candidate)
    except ValueError:
        # Left as-is so classification reports it as malformed.
        return candidate


def slugify(text: str) -> str:
    """File-name-safe slug, e.g. `www.example.com:8080` -> `www-example-com8080`."""

    slug = str(text).lower()
    slug = re.sub(r"[\s.]+", "-", slug)
    slug = re.sub(r"[^\w-]+", "", slug)
    slug = re.sub(r"--+", "-", slug)
    return slug.strip("-")


__all__ = [
    "HTTP_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "canonical_host_from_url",
    "is_http_url",
    "is_loopback_host",
    "normalize_external_url",
    "normalize_url",
    "origin_of",
    "resolve_anchor",
    "slugify",
    "split_url",
]
