import json

import pytest
import requests

from linkcrawler.config import CrawlConfig
from linkcrawler.errors import TransportError
from linkcrawler.transport import (
    RequestsTransport,
    SeleniumTransport,
    build_transport,
    parse_performance_log,
)
from linkcrawler.types import ResourceCollector


def _entry(method: str, **params) -> dict:
    return {"message": json.dumps({"message": {"method": method, "params": params}})}


def test_parse_performance_log_reads_status_chain_and_resources():
    entries = [
        _entry(
            "Network.requestWillBeSent",
            requestId="1",
            type="Document",
            request={"url": "https://ex.com/old"},
        ),
        _entry(
            "Network.requestWillBeSent",
            requestId="1",
            type="Document",
            request={"url": "https://ex.com/new"},
            redirectResponse={"url": "https://ex.com/old", "status": 301},
        ),
        _entry("Network.responseReceived", requestId="1", response={"status": 200}),
        _entry(
            "Network.requestWillBeSent",
            requestId="2",
            type="Image",
            request={"url": "https://ex.com/logo.png"},
        ),
        _entry(
            "Network.requestWillBeSent",
            requestId="3",
            type="XHR",
            request={"url": "https://ex.com/api"},
        ),
        _entry("Network.responseReceived", requestId="2", response={"status": 404}),
        {"message": "not json"},
    ]
    collector = ResourceCollector()

    status, chain = parse_performance_log(entries, collector)

    assert status == 200
    assert chain == ["https://ex.com/old"]
    assert collector.by_type() == {"image": ["https://ex.com/logo.png"]}
    assert collector.untracked == 1


def test_parse_performance_log_without_document_events():
    assert parse_performance_log([]) == (None, [])


class FakeResponse:
    def __init__(self, url, status_code=200, text="", content_type="text/html", history=()):
        self.url = url
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": content_type}
        self.history = list(history)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_requests_transport_builds_navigation_result():
    html = '<html><head><title>New</title><link rel="stylesheet" href="/s.css"></head><body><a href="/a">a</a></body></html>'
    response = FakeResponse(
        "https://ex.com/new",
        text=html,
        content_type="text/html; charset=utf-8",
        history=[FakeResponse("https://ex.com/old", status_code=301)],
    )
    session = FakeSession(response)
    transport = RequestsTransport(timeout_seconds=5, headers={"User-Agent": "test"}, session=session)
    collector = ResourceCollector()

    result = transport.navigate("https://ex.com/old", collector=collector)

    assert result.ok
    assert result.final_url == "https://ex.com/new"
    assert result.redirect_chain == ["https://ex.com/old"]
    assert collector.by_type() == {"stylesheet": ["https://ex.com/s.css"]}
    assert session.requests[0][1]["timeout"] == 5

    page = transport.extract(result)
    assert page.anchors == ["https://ex.com/a"]
    assert page.meta_fields["title"] == "New"

    transport.close()
    assert not session.closed


def test_requests_transport_skips_non_html_bodies():
    response = FakeResponse("https://ex.com/file.pdf", text="%PDF", content_type="application/pdf")
    transport = RequestsTransport(timeout_seconds=5, session=FakeSession(response))

    result = transport.navigate("https://ex.com/file.pdf")

    assert result.html == ""
    assert transport.extract(result).anchors == []


def test_requests_transport_wraps_request_errors():
    session = FakeSession(error=requests.ConnectionError("connection reset"))
    transport = RequestsTransport(timeout_seconds=5, session=session)

    with pytest.raises(TransportError, match="connection reset"):
        transport.navigate("https://ex.com/")


def test_build_transport_selects_backend():
    requests_transport = build_transport(CrawlConfig(seed_url="https://ex.com/", backend="requests"))
    assert isinstance(requests_transport, RequestsTransport)
    assert requests_transport.headers["User-Agent"]
    requests_transport.close()

    selenium_transport = build_transport(CrawlConfig(seed_url="https://ex.com/", headless=False))
    assert isinstance(selenium_transport, SeleniumTransport)
    assert selenium_transport.headless is False
    # The browser is only started on the first navigation.
    assert selenium_transport.describe() == "selenium (not started)"
    selenium_transport.close()
