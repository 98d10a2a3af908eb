"""Internal/external classification of discovered links."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Sequence

from .errors import ConfigurationError, MalformedUrl
from .url import origin_of, split_url


_NO_DOT = r"(?!\.)"
_SEGMENTS = rf"(?:{_NO_DOT}[^/]*/)*"


@lru_cache(maxsize=256)
def compile_path_glob(pattern: str) -> re.Pattern[str]:
    """Compile a micromatch-style path glob into an anchored regex.

    - `?` matches one character and `*` any run of characters, both within a
      single path segment. A `*` that is a whole segment must match at least
      one character, so `/blog/*` matches `/blog/post` but not `/blog/`.
    - `**/` matches zero or more whole segments and a trailing `**` matches
      the rest of the path, so `/blog/**` matches `/blog/` and `/blog/a/b`
      but not `/blog`. A `**` inside a segment behaves like `*`.
    - Wildcards never match a segment starting with a dot. Hidden files and
      `.`/`..` segments are only matched by patterns that spell the dot out,
      such as `/blog/.*`.
    """

    parts: list[str] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        segment_start = index == 0 or pattern[index - 1] == "/"
        if segment_start and pattern.startswith("**/", index):
            parts.append(_SEGMENTS)
            index += 3
            continue
        if segment_start and pattern.startswith("**", index) and index + 2 == len(pattern):
            parts.append(_SEGMENTS + _NO_DOT + "[^/]*")
            index += 2
            continue
        if char == "*":
            width = 2 if pattern.startswith("**", index) else 1
            segment_end = index + width == len(pattern) or pattern[index + width] == "/"
            prefix = _NO_DOT if segment_start else ""
            parts.append(prefix + ("[^/]+" if segment_start and segment_end else "[^/]*"))
            index += width
            continue
        if char == "?":
            parts.append((_NO_DOT if segment_start else "") + "[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts) + r"\Z")


def path_matches(path: str, pattern: str) -> bool:
    return compile_path_glob(pattern).match(path) is not None


class DomainClassifier:
    """Decide whether a URL falls outside the crawled site.

    A URL is external when its origin matches none of `valid_domains`
    (http and https are treated as the same origin), when its path matches an
    exclude pattern, or when include patterns are configured and the path does
    not match all of them.
    """

    def __init__(
        self,
        valid_domains: Iterable[str],
        *,
        include_path_patterns: Sequence[str] = (),
        exclude_path_patterns: Sequence[str] = (),
    ) -> None:
        origins: list[str] = []
        for domain in valid_domains:
            try:
                origin = origin_of(domain)
            except MalformedUrl as exc:
                raise ConfigurationError(f"Invalid domain URL {domain!r}: {exc.reason}") from exc
            if origin not in origins:
                origins.append(origin)
        if not origins:
            raise ConfigurationError("At least one valid domain is required")

        self.origins = tuple(origins)
        self.include_path_patterns = tuple(include_path_patterns)
        self.exclude_path_patterns = tuple(exclude_path_patterns)

    def is_same_domain(self, url: str) -> bool:
        return origin_of(url) in self.origins

    def is_external(self, url: str) -> bool:
        """Classify one URL; raises `MalformedUrl` if it cannot be parsed."""

        if not self.is_same_domain(url):
            return True

        path = split_url(url).path or "/"
        if any(path_matches(path, pattern) for pattern in self.exclude_path_patterns):
            return True

        if not self.include_path_patterns:
            return False
        return not all(path_matches(path, pattern) for pattern in self.include_path_patterns)


__all__ = [
    "DomainClassifier",
    "compile_path_glob",
    "path_matches",
]
