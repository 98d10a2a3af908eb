"""Default values shared by config, transports, and the crawl loop."""

from __future__ import annotations


DEFAULT_OUTPUT_DIR = "out"
DEFAULT_DELAY_SECONDS = 0.5
DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 1.0
DEFAULT_RETRY_EXPONENT = 1.5

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; linkcrawler/0.1)"
DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

DEFAULT_HEADLESS = True
DEFAULT_CHECK_EXTERNALS = False

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

# Resource types recorded per page when collecting the `resources` meta type.
TRACKED_RESOURCE_TYPES = ("image", "stylesheet", "font", "media", "script")

# Meta tags copied into metadata records, besides the document title.
META_TAG_NAMES = ("robots", "description", "keywords")
META_TAG_PREFIXES = ("og:", "twitter:")

LIGHTHOUSE_CATEGORIES = ("performance", "accessibility", "best-practices", "seo")
DEFAULT_LIGHTHOUSE_BINARY = "lighthouse"
DEFAULT_LIGHTHOUSE_TIMEOUT_SECONDS = 180.0

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

STATE_FILE_SUFFIX = ".json"
META_FILE_SUFFIX = ".meta.json"


__all__ = [
    "DEFAULT_CHECK_EXTERNALS",
    "DEFAULT_DELAY_SECONDS",
    "DEFAULT_HEADLESS",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_LIGHTHOUSE_BINARY",
    "DEFAULT_LIGHTHOUSE_TIMEOUT_SECONDS",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_BASE_DELAY_SECONDS",
    "DEFAULT_RETRY_EXPONENT",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "JSON_INDENT",
    "LIGHTHOUSE_CATEGORIES",
    "LOOPBACK_HOSTS",
    "META_FILE_SUFFIX",
    "META_TAG_NAMES",
    "META_TAG_PREFIXES",
    "STATE_FILE_SUFFIX",
    "SUPPORTED_CONFIG_SUFFIXES",
    "TRACKED_RESOURCE_TYPES",
]
