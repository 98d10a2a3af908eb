from __future__ import annotations

from typing import Callable, Union

import pytest

from linkcrawler.config import CrawlConfig
from linkcrawler.errors import TransportError
from linkcrawler.transport import Transport
from linkcrawler.types import FetchBackend, NavigationResult, ResourceCollector


Response = Union[NavigationResult, BaseException, Callable[[str], NavigationResult]]


def html_page(*hrefs: str, title: str = "Page", extra_head: str = "") -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>{title}</title>{extra_head}</head><body>{anchors}</body></html>"


def page_result(
    url: str,
    *hrefs: str,
    status: int = 200,
    final_url: str | None = None,
    redirect_chain: list[str] | None = None,
    title: str = "Page",
) -> NavigationResult:
    return NavigationResult(
        requested_url=url,
        status=status,
        final_url=final_url or url,
        redirect_chain=list(redirect_chain or []),
        html=html_page(*hrefs, title=title),
        elapsed_ms=5,
    )


class FakeTransport(Transport):
    """Serves canned results per URL; a list of responses is consumed in order."""

    backend = FetchBackend.REQUESTS

    def __init__(self, responses: dict[str, Response | list[Response]] | None = None) -> None:
        self.responses: dict[str, list[Response]] = {}
        for url, response in (responses or {}).items():
            self.add(url, response)
        self.calls: list[str] = []
        self.resources: dict[str, list[tuple[str, str]]] = {}
        self.closed = False

    def add(self, url: str, response: Response | list[Response]) -> None:
        self.responses[url] = list(response) if isinstance(response, list) else [response]

    def navigate(self, url: str, *, collector: ResourceCollector | None = None) -> NavigationResult:
        self.calls.append(url)
        queue = self.responses.get(url)
        if not queue:
            raise TransportError(f"no route to {url}")

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if collector is not None:
            for resource_url, resource_type in self.resources.get(url, []):
                collector.record(resource_url, resource_type)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(url)
        return response

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_config() -> Callable[..., CrawlConfig]:
    def _make(seed_url: str = "https://ex.com/", **overrides) -> CrawlConfig:
        overrides.setdefault("delay_seconds", 0.0)
        return CrawlConfig(seed_url=seed_url, **overrides)

    return _make
