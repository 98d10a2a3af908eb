"""Page navigation backends: a selenium browser and plain requests.

A transport turns one URL into a `NavigationResult` (status, redirect chain,
final URL, rendered HTML). It raises `TransportError` for transient failures
and `TransportCrashed` when the backend itself is gone. Retrying is not its
job; see `retry.RetryPolicy`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Iterable, Iterator

import requests
from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSessionIdException,
    NoSuchWindowException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions

from .config import CrawlConfig
from .errors import TransportCrashed, TransportError
from .extract import extract_page, iter_static_resources
from .types import ExtractedPage, FetchBackend, NavigationResult, ResourceCollector


LOGGER = logging.getLogger(__name__)

# WebDriver error messages that mean the browser is gone rather than the page.
_CRASH_MARKERS = (
    "chrome not reachable",
    "disconnected",
    "invalid session id",
    "session deleted",
    "browsing context has been discarded",
)


class Transport:
    """Base class for navigation backends."""

    backend: FetchBackend

    def navigate(
        self,
        url: str,
        *,
        collector: ResourceCollector | None = None,
    ) -> NavigationResult:
        raise NotImplementedError

    def extract(self, result: NavigationResult) -> ExtractedPage:
        """Anchors and meta fields of a navigated page."""

        return extract_page(result.html, base_url=result.final_url or result.requested_url)

    def describe(self) -> str:
        return self.backend.value

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _record_static_resources(
    collector: ResourceCollector | None,
    html: str,
    base_url: str,
) -> None:
    if collector is None or not html:
        return
    for resource_url, resource_type in iter_static_resources(html, base_url=base_url):
        collector.record(resource_url, resource_type)


class RequestsTransport(Transport):
    """HTTP-only transport; no JavaScript, redirects come from `response.history`."""

    backend = FetchBackend.REQUESTS

    def __init__(
        self,
        *,
        timeout_seconds: float,
        headers: dict[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.headers = dict(headers or {})
        self._session = session or requests.Session()
        self._owns_session = session is None

    def navigate(
        self,
        url: str,
        *,
        collector: ResourceCollector | None = None,
    ) -> NavigationResult:
        started = time.perf_counter()
        try:
            response = self._session.get(
                url,
                headers=self.headers,
                timeout=self.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{exc.__class__.__name__}: {exc}") from exc

        content_type = (response.headers.get("Content-Type") or "").lower()
        html = response.text if "html" in content_type else ""
        final_url = str(response.url or url)
        _record_static_resources(collector, html, final_url)

        return NavigationResult(
            requested_url=url,
            status=int(response.status_code),
            final_url=final_url,
            redirect_chain=[str(hop.url) for hop in response.history],
            html=html,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


def _iter_devtools_events(entries: Iterable[dict[str, Any]]) -> Iterator[tuple[str, dict[str, Any]]]:
    for entry in entries:
        try:
            message = json.loads(entry["message"])["message"]
        except (KeyError, TypeError, ValueError):
            continue
        method = message.get("method")
        if isinstance(method, str):
            yield method, message.get("params") or {}


def parse_performance_log(
    entries: Iterable[dict[str, Any]],
    collector: ResourceCollector | None = None,
) -> tuple[int | None, list[str]]:
    """Read Chrome DevTools network events for one navigation.

    Returns the main document's status and its redirect chain (the URLs that
    answered with a redirect, in order). Sub-resource requests are recorded
    into `collector`.
    """

    main_request_id: str | None = None
    status: int | None = None
    chain: list[str] = []

    for method, params in _iter_devtools_events(entries):
        request_id = params.get("requestId")

        if method == "Network.requestWillBeSent":
            resource_type = str(params.get("type") or "")
            if resource_type == "Document" and main_request_id is None:
                main_request_id = request_id
            if request_id == main_request_id and main_request_id is not None:
                redirect = params.get("redirectResponse")
                if isinstance(redirect, dict) and redirect.get("url"):
                    chain.append(str(redirect["url"]))
                continue
            if collector is not None:
                request_url = (params.get("request") or {}).get("url")
                if request_url and not collector.record(str(request_url), resource_type):
                    LOGGER.debug("Untracked request %s %s", resource_type, request_url)

        elif method == "Network.responseReceived" and request_id == main_request_id:
            response = params.get("response") or {}
            if response.get("status") is not None:
                status = int(response["status"])

    return status, chain


class SeleniumTransport(Transport):
    """Headless browser transport.

    Chrome is preferred because its performance log exposes the real status
    code, the redirect chain and every sub-resource request. The Firefox
    fallback reports status 200 and reads resources from the final DOM.
    """

    backend = FetchBackend.SELENIUM

    def __init__(
        self,
        *,
        timeout_seconds: float,
        user_agent: str,
        headless: bool = True,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.headless = headless

        self._driver = None
        self._browser_name: str | None = None

    def describe(self) -> str:
        return f"{self.backend.value} ({self._browser_name or 'not started'})"

    @property
    def has_network_log(self) -> bool:
        return self._browser_name == "chrome"

    def navigate(
        self,
        url: str,
        *,
        collector: ResourceCollector | None = None,
    ) -> NavigationResult:
        driver = self._get_or_create_driver()
        started = time.perf_counter()

        try:
            if self.has_network_log:
                # Drop events left over from the previous page.
                driver.get_log("performance")
            driver.set_page_load_timeout(max(1, int(self.timeout_seconds)))
            driver.get(url)
            final_url = driver.current_url or url
            html = driver.page_source or ""
            entries = driver.get_log("performance") if self.has_network_log else []
        except (InvalidSessionIdException, NoSuchWindowException) as exc:
            raise TransportCrashed(f"Browser session lost: {exc}") from exc
        except TimeoutException as exc:
            raise TransportError(f"Timed out loading {url}") from exc
        except WebDriverException as exc:
            message = str(exc).lower()
            if any(marker in message for marker in _CRASH_MARKERS):
                raise TransportCrashed(f"Browser crashed: {exc}") from exc
            raise TransportError(f"{exc.__class__.__name__}: {exc.msg or exc}") from exc

        if self.has_network_log:
            status, chain = parse_performance_log(entries, collector)
        else:
            status, chain = None, []
            _record_static_resources(collector, html, final_url)

        return NavigationResult(
            requested_url=url,
            status=200 if status is None else status,
            final_url=final_url,
            redirect_chain=chain,
            html=html,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def close(self) -> None:
        if self._driver is None:
            return
        try:
            self._driver.quit()
        except WebDriverException as exc:
            LOGGER.warning("Error while closing browser: %s", exc)
        finally:
            self._driver = None

    def _get_or_create_driver(self):
        if self._driver is not None:
            return self._driver

        errors: list[str] = []

        # Try Chrome first.
        try:
            chrome_options = ChromeOptions()
            if self.headless:
                chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument(f"--user-agent={self.user_agent}")
            chrome_options.set_capability("goog:loggingPrefs", {"performance": "ALL"})
            self._driver = webdriver.Chrome(options=chrome_options)
            self._browser_name = "chrome"
            LOGGER.info("Running on %s", self._driver.capabilities.get("browserVersion", "chrome"))
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Chrome: {exc}")

        # Fallback to Firefox.
        try:
            firefox_options = FirefoxOptions()
            if self.headless:
                firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", self.user_agent)
            self._driver = webdriver.Firefox(options=firefox_options)
            self._browser_name = "firefox"
            LOGGER.warning(
                "Chrome unavailable; using Firefox without network log "
                "(statuses and redirect chains are not observable)"
            )
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Firefox: {exc}")

        raise TransportCrashed("; ".join(errors) or "No usable Selenium driver found")


def build_transport(config: CrawlConfig) -> Transport:
    """Create the transport selected by `config.backend`."""

    if config.backend == FetchBackend.REQUESTS:
        return RequestsTransport(
            timeout_seconds=config.timeout_seconds,
            headers=config.request_headers(),
        )
    return SeleniumTransport(
        timeout_seconds=config.timeout_seconds,
        user_agent=config.user_agent,
        headless=config.headless,
    )


__all__ = [
    "RequestsTransport",
    "SeleniumTransport",
    "Transport",
    "build_transport",
    "parse_performance_log",
]
