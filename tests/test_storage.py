import json
import threading

import pytest

from linkcrawler.storage import CoalescingWriter, StateStore, atomic_write_json, read_json
from linkcrawler.types import CrawlSnapshot


class BlockingSink:
    """Write function whose first call blocks until released."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.first_started = threading.Event()
        self.written: list[int] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, snapshot: int) -> None:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if not self.first_started.is_set():
                self.first_started.set()
                assert self.release.wait(timeout=5)
            self.written.append(snapshot)
        finally:
            with self._lock:
                self.active -= 1


def test_coalescing_writer_keeps_only_latest_snapshot(tmp_path):
    sink = BlockingSink()
    writer = CoalescingWriter(tmp_path / "state.json", write=sink)

    writer.save(0)
    assert sink.first_started.wait(timeout=5)
    for value in range(1, 50):
        writer.save(value)
    assert writer.busy

    sink.release.set()
    assert writer.close(timeout=5)

    assert sink.written == [0, 49]
    assert sink.max_active == 1
    assert writer.writes_completed == 2


def test_coalescing_writer_writes_file_atomically(tmp_path):
    path = tmp_path / "nested" / "state.json"
    writer = CoalescingWriter(path)

    for index in range(10):
        writer.save({"n": index})
    assert writer.close(timeout=5)

    assert json.loads(path.read_text(encoding="utf-8")) == {"n": 9}
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_write_failure_is_recorded_and_next_save_retries(tmp_path):
    calls = []

    def flaky(payload):
        calls.append(payload)
        if len(calls) == 1:
            raise OSError("disk full")

    writer = CoalescingWriter(tmp_path / "x.json", write=flaky)
    writer.save("first")
    assert writer.wait_idle(timeout=5)
    assert writer.writes_failed == 1
    assert isinstance(writer.last_error, OSError)

    writer.save("second")
    assert writer.close(timeout=5)
    assert calls == ["first", "second"]
    assert writer.writes_completed == 1


def test_save_after_close_raises(tmp_path):
    writer = CoalescingWriter(tmp_path / "x.json", write=lambda payload: None)
    writer.close()
    with pytest.raises(RuntimeError):
        writer.save({})


def test_read_json_tolerates_missing_and_corrupt_files(tmp_path, caplog):
    assert read_json(tmp_path / "missing.json") is None

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert read_json(corrupt) is None

    listing = tmp_path / "list.json"
    atomic_write_json(listing, {"ok": True})
    assert read_json(listing) == {"ok": True}
    listing.write_text("[1, 2]", encoding="utf-8")
    assert read_json(listing) is None
    assert "expected a JSON object" in caplog.text


def test_state_store_round_trip(tmp_path):
    snapshot = CrawlSnapshot(
        visited_urls=("https://ex.com/",),
        pending_urls=("https://ex.com/b", "https://ex.com/a"),
        external_urls=("https://other.com/x",),
    )

    with StateStore(tmp_path, "ex.com") as store:
        assert store.state_path.name == "ex-com.json"
        assert store.meta_path.name == "ex-com.meta.json"
        store.save_state(snapshot)
        store.save_metadata({"https://ex.com/": {"title": "Home"}})

    reopened = StateStore(tmp_path, "ex.com")
    try:
        assert reopened.load_state() == snapshot
        assert reopened.load_metadata() == {"https://ex.com/": {"title": "Home"}}
        raw = json.loads(reopened.state_path.read_text(encoding="utf-8"))
        assert raw["pendingUrls"] == ["https://ex.com/b", "https://ex.com/a"]
        assert raw["unreachableUrls"] == []
    finally:
        reopened.close()


def test_state_store_ignores_malformed_state(tmp_path):
    (tmp_path / "ex-com.json").write_text('{"visitedUrls": "oops"}', encoding="utf-8")
    store = StateStore(tmp_path, "ex.com")
    try:
        assert store.load_state() is None
    finally:
        store.close()
