"""Out-of-process Lighthouse runs for per-page quality scores."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import Any, Callable, Sequence

from .constants import (
    DEFAULT_LIGHTHOUSE_BINARY,
    DEFAULT_LIGHTHOUSE_TIMEOUT_SECONDS,
    LIGHTHOUSE_CATEGORIES,
)
from .errors import ConfigurationError


LOGGER = logging.getLogger(__name__)


def parse_lighthouse_report(payload: dict[str, Any]) -> dict[str, float | None]:
    """Map category id to its 0..1 score; unscored categories map to None."""

    categories = payload.get("categories")
    if not isinstance(categories, dict):
        raise ValueError("Lighthouse report has no 'categories' object")

    scores: dict[str, float | None] = {}
    for category_id, category in categories.items():
        if not isinstance(category, dict):
            continue
        score = category.get("score")
        scores[str(category_id)] = float(score) if score is not None else None
    return scores


class LighthouseAuditor:
    """Runs the `lighthouse` CLI once per page and returns category scores.

    A failed audit is logged and yields None; it never fails the crawl.
    """

    def __init__(
        self,
        binary: str = DEFAULT_LIGHTHOUSE_BINARY,
        *,
        timeout_seconds: float = DEFAULT_LIGHTHOUSE_TIMEOUT_SECONDS,
        categories: Sequence[str] = LIGHTHOUSE_CATEGORIES,
        runner: Callable[..., subprocess.CompletedProcess] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.categories = tuple(categories)
        self._runner = runner or subprocess.run

        if runner is None:
            resolved = shutil.which(binary)
            if resolved is None:
                raise ConfigurationError(
                    f"Lighthouse binary {binary!r} not found on PATH "
                    "(install it with `npm install -g lighthouse`)"
                )
            self.binary = resolved
        else:
            self.binary = binary

    def command(self, url: str) -> list[str]:
        return [
            self.binary,
            url,
            "--output=json",
            "--output-path=stdout",
            "--quiet",
            f"--only-categories={','.join(self.categories)}",
            "--chrome-flags=--headless=new --no-sandbox",
        ]

    def audit(self, url: str) -> dict[str, float | None] | None:
        LOGGER.info("Running lighthouse on %s", url)
        try:
            completed = self._runner(
                self.command(url),
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            LOGGER.warning("Lighthouse failed for %s: %s", url, exc)
            return None

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip().splitlines()
            LOGGER.warning(
                "Lighthouse exited with %s for %s: %s",
                completed.returncode,
                url,
                stderr[-1] if stderr else "no output",
            )
            return None

        try:
            return parse_lighthouse_report(json.loads(completed.stdout or ""))
        except ValueError as exc:
            LOGGER.warning("Could not read lighthouse report for %s: %s", url, exc)
            return None


__all__ = [
    "LighthouseAuditor",
    "parse_lighthouse_report",
]
