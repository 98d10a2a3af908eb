"""Filesystem persistence for crawl state and page metadata.

Each output file is owned by one `CoalescingWriter`: at most one write is in
flight per file, at most one snapshot is waiting, and `save` never blocks on
disk.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Callable, Mapping

from .constants import JSON_INDENT, META_FILE_SUFFIX, STATE_FILE_SUFFIX
from .types import CrawlSnapshot, JSONDict
from .url import slugify


LOGGER = logging.getLogger(__name__)


def atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    """Replace `path` with `payload` serialized as JSON, atomically."""

    content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=path.name + ".",
        suffix=".tmp",
    )
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def read_json(path: Path) -> dict[str, Any] | None:
    """Load a JSON object, or None when the file is missing or unreadable."""

    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable file %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        LOGGER.warning("Ignoring %s: expected a JSON object, got %s", path, type(payload).__name__)
        return None
    return payload


class CoalescingWriter:
    """Latest-wins background writer for one file.

    `save` overwrites the single pending slot and triggers a flush. A flush is
    a no-op while a write is in flight; when that write completes it flushes
    again if a newer snapshot arrived meanwhile.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        write: Callable[[Any], None] | None = None,
    ) -> None:
        self.path = Path(path)
        self._write = write or (lambda payload: atomic_write_json(self.path, payload))
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"writer-{self.path.name}",
        )

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending: Any = None
        self._has_pending = False
        self._in_flight = False
        self._closed = False

        self.writes_completed = 0
        self.writes_failed = 0
        self.last_error: BaseException | None = None

    def save(self, snapshot: Any) -> None:
        """Replace the pending snapshot and start a write if none is running."""

        with self._lock:
            if self._closed:
                raise RuntimeError(f"Writer for {self.path} is closed")
            self._pending = snapshot
            self._has_pending = True
        self._flush()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._in_flight or self._has_pending

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is pending or in flight; False on timeout."""

        with self._idle:
            return self._idle.wait_for(
                lambda: not self._in_flight and not self._has_pending,
                timeout=timeout,
            )

    def close(self, timeout: float | None = None) -> bool:
        """Drain outstanding writes and stop the worker thread."""

        drained = self.wait_idle(timeout)
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=drained)
        if not drained:
            LOGGER.warning("Gave up waiting for pending write of %s", self.path)
        return drained

    def _flush(self) -> None:
        with self._lock:
            if self._in_flight or not self._has_pending:
                return
            snapshot = self._pending
            self._pending = None
            self._has_pending = False
            self._in_flight = True
        self._executor.submit(self._run, snapshot)

    def _run(self, snapshot: Any) -> None:
        try:
            self._write(snapshot)
        except Exception as exc:
            LOGGER.exception("Failed to write %s", self.path)
            with self._lock:
                self.writes_failed += 1
                self.last_error = exc
        else:
            with self._lock:
                self.writes_completed += 1
        finally:
            with self._lock:
                self._in_flight = False
                self._idle.notify_all()
            self._flush()


class StateStore:
    """Owns the state file and metadata file for one canonical host.

    Files live under `output_dir` as `<slug>.json` and `<slug>.meta.json`.
    """

    def __init__(self, output_dir: str | Path, canonical_host: str) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        slug = slugify(canonical_host) or "crawl"
        self.state_path = self.output_dir / f"{slug}{STATE_FILE_SUFFIX}"
        self.meta_path = self.output_dir / f"{slug}{META_FILE_SUFFIX}"

        self._state_writer = CoalescingWriter(
            self.state_path,
            write=lambda snapshot: atomic_write_json(self.state_path, snapshot.to_json()),
        )
        self._meta_writer = CoalescingWriter(self.meta_path)

    @property
    def paths(self) -> JSONDict:
        """Return output paths for logging/CLI status messages."""

        return {
            "output_dir": str(self.output_dir),
            "state": str(self.state_path),
            "metadata": str(self.meta_path),
        }

    def load_state(self) -> CrawlSnapshot | None:
        payload = read_json(self.state_path)
        if payload is None:
            return None
        try:
            return CrawlSnapshot.from_json(payload)
        except ValueError as exc:
            LOGGER.warning("Ignoring malformed state file %s: %s", self.state_path, exc)
            return None

    def load_metadata(self) -> dict[str, Any] | None:
        return read_json(self.meta_path)

    def save_state(self, snapshot: CrawlSnapshot) -> None:
        self._state_writer.save(snapshot)

    def save_metadata(self, payload: Mapping[str, Any]) -> None:
        self._meta_writer.save(dict(payload))

    def wait_idle(self, timeout: float | None = None) -> bool:
        state_done = self._state_writer.wait_idle(timeout)
        meta_done = self._meta_writer.wait_idle(timeout)
        return state_done and meta_done

    def close(self, timeout: float | None = None) -> bool:
        state_done = self._state_writer.close(timeout)
        meta_done = self._meta_writer.close(timeout)
        return state_done and meta_done

    def __enter__(self) -> "StateStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "CoalescingWriter",
    "StateStore",
    "atomic_write_json",
    "read_json",
]
