"""Bounded retry with exponential backoff around one navigation."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Callable

from .constants import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_EXPONENT,
)
from .errors import NavigationFailed, TransportError
from .types import NavigationResult


LOGGER = logging.getLogger(__name__)


class RetryableStatus(TransportError):
    """Raised internally when a response status should be retried."""

    def __init__(self, result: NavigationResult) -> None:
        super().__init__(f"Resource responded with {result.status}")
        self.result = result


def backoff_delays(attempts: int, base_seconds: float, exponent: float) -> list[float]:
    """Delays slept between consecutive attempts (one fewer than `attempts`)."""

    return [base_seconds * exponent**index for index in range(max(0, attempts - 1))]


def is_retryable_status(status: int) -> bool:
    """Non-2xx statuses are retried, except 404 which is a terminal answer."""

    return not (200 <= status < 300) and status != 404


@dataclass(slots=True)
class RetryPolicy:
    """Run a navigation up to `attempts` times.

    Transport errors and non-2xx/404 statuses are retried with delays of
    `base_delay_seconds * exponent ** n`. Any other exception propagates
    untouched.
    """

    attempts: int = DEFAULT_RETRY_ATTEMPTS
    base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    exponent: float = DEFAULT_RETRY_EXPONENT
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.exponent < 1:
            raise ValueError("exponent must be >= 1")

    @property
    def delays(self) -> list[float]:
        return backoff_delays(self.attempts, self.base_delay_seconds, self.exponent)

    def run(
        self,
        navigate_once: Callable[[str], NavigationResult],
        url: str,
    ) -> NavigationResult:
        """Return the first acceptable result or raise `NavigationFailed`."""

        delays = self.delays
        last_error: TransportError | None = None
        last_result: NavigationResult | None = None

        for attempt in range(1, self.attempts + 1):
            try:
                result = navigate_once(url)
                if is_retryable_status(result.status):
                    raise RetryableStatus(result)
                return result
            except TransportError as exc:
                last_error = exc
                if isinstance(exc, RetryableStatus):
                    last_result = exc.result

            if attempt < self.attempts:
                delay = delays[attempt - 1]
                LOGGER.info(
                    "Attempt %d/%d for %s failed (%s); retrying in %.2fs",
                    attempt,
                    self.attempts,
                    url,
                    last_error,
                    delay,
                )
                self.sleep(delay)

        raise NavigationFailed(
            url,
            last_error,
            result=last_result,
            attempts=self.attempts,
        ) from last_error


__all__ = [
    "RetryPolicy",
    "RetryableStatus",
    "backoff_delays",
    "is_retryable_status",
]
