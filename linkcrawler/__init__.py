"""Crawler package: config, shared types, and crawl loop components."""

from .audit import LighthouseAuditor
from .classifier import DomainClassifier
from .config import CrawlConfig, load_config, load_config_dict, parse_meta_types, save_config
from .errors import (
    ConfigurationError,
    CrawlerError,
    InvalidTransition,
    MalformedUrl,
    NavigationFailed,
    TransportCrashed,
    TransportError,
)
from .frontier import EnqueueResult, EnqueueStatus, Frontier, ReconcileReport
from .metadata import MetadataStore
from .pipeline import Crawler, PageOutcome
from .report import PageLinkReport, audit_page_links, build_link_report, format_link_report
from .retry import RetryPolicy
from .stats import StatsCollector
from .storage import CoalescingWriter, StateStore
from .transport import RequestsTransport, SeleniumTransport, Transport, build_transport
from .types import (
    CrawlSnapshot,
    ExtractedPage,
    FetchBackend,
    FrontierStatus,
    MetadataRecord,
    MetaType,
    NavigationResult,
    RedirectScope,
    ResourceCollector,
)
from .url import normalize_external_url, normalize_url

__all__ = [
    "CoalescingWriter",
    "ConfigurationError",
    "CrawlConfig",
    "CrawlSnapshot",
    "Crawler",
    "CrawlerError",
    "DomainClassifier",
    "EnqueueResult",
    "EnqueueStatus",
    "ExtractedPage",
    "FetchBackend",
    "Frontier",
    "FrontierStatus",
    "InvalidTransition",
    "LighthouseAuditor",
    "MalformedUrl",
    "MetaType",
    "MetadataRecord",
    "MetadataStore",
    "NavigationFailed",
    "NavigationResult",
    "PageLinkReport",
    "PageOutcome",
    "ReconcileReport",
    "RedirectScope",
    "RequestsTransport",
    "ResourceCollector",
    "RetryPolicy",
    "SeleniumTransport",
    "StateStore",
    "StatsCollector",
    "Transport",
    "TransportCrashed",
    "TransportError",
    "audit_page_links",
    "build_link_report",
    "build_transport",
    "format_link_report",
    "load_config",
    "load_config_dict",
    "normalize_external_url",
    "normalize_url",
    "parse_meta_types",
    "save_config",
]
