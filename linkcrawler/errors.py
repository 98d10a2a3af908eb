"""Exception hierarchy for the crawler.

Only `MalformedUrl` is recovered silently (per anchor). `NavigationFailed` is
recovered by the crawl loop, everything else propagates to the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import FrontierStatus, NavigationResult


class CrawlerError(Exception):
    """Base class for crawler errors."""


class ConfigurationError(CrawlerError, ValueError):
    """Invalid or missing configuration, raised before the crawl loop starts."""


class MalformedUrl(CrawlerError, ValueError):
    """A string could not be parsed as an absolute URL."""

    def __init__(self, url: str, reason: str = "not a parseable URL") -> None:
        super().__init__(f"Malformed URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class TransportError(CrawlerError):
    """Transient navigation failure (timeout, DNS, connection reset)."""


class TransportCrashed(CrawlerError):
    """The transport itself died (e.g. the browser process); the run must stop."""


class NavigationFailed(CrawlerError):
    """Retry budget exhausted for one URL."""

    def __init__(
        self,
        url: str,
        last_error: BaseException | None,
        *,
        result: "NavigationResult | None" = None,
        attempts: int = 0,
    ) -> None:
        detail = str(last_error) if last_error is not None else "unknown failure"
        super().__init__(f"Could not navigate to {url} after {attempts} attempt(s): {detail}")
        self.url = url
        self.last_error = last_error
        self.result = result
        self.attempts = attempts


class InvalidTransition(CrawlerError, RuntimeError):
    """A frontier state change that the state machine does not allow."""

    def __init__(
        self,
        url: str,
        current: "FrontierStatus | None",
        target: "FrontierStatus",
    ) -> None:
        current_name = "unknown" if current is None else current.value
        super().__init__(f"Cannot move {url} from {current_name} to {target.value}")
        self.url = url
        self.current = current
        self.target = target


__all__ = [
    "ConfigurationError",
    "CrawlerError",
    "InvalidTransition",
    "MalformedUrl",
    "NavigationFailed",
    "TransportCrashed",
    "TransportError",
]
