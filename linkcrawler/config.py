"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_CHECK_EXTERNALS,
    DEFAULT_DELAY_SECONDS,
    DEFAULT_HEADLESS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_LIGHTHOUSE_BINARY,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_EXPONENT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .errors import ConfigurationError, MalformedUrl
from .types import FetchBackend, JSONDict, MetaType, RedirectScope
from .url import canonical_host_from_url, is_http_url


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ConfigurationError(f"Invalid list for '{key}': {value!r}")


def _to_enum(enum_cls, value: Any, key: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in enum_cls)
        raise ConfigurationError(f"Invalid {key} {value!r} (expected one of {choices})") from exc


def parse_meta_types(value: str | Iterable[Any] | None) -> list[MetaType]:
    """Parse `anchors,resources,lighthouse` style selections.

    Unknown names raise `ConfigurationError`.
    """

    if value is None:
        return []
    raw_items = value.split(",") if isinstance(value, str) else list(value)

    out: list[MetaType] = []
    valid = ", ".join(item.value for item in MetaType)
    for item in raw_items:
        if isinstance(item, MetaType):
            meta_type = item
        else:
            name = str(item).strip().lower()
            if not name:
                continue
            try:
                meta_type = MetaType(name)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{name} is not a valid meta type (expected one or multiple of {valid} "
                    "separated by a comma)"
                ) from exc
        if meta_type not in out:
            out.append(meta_type)
    return out


@dataclass(slots=True)
class CrawlConfig:
    """Top-level crawler configuration used by pipeline/frontier/transport."""

    seed_url: str
    domain_aliases: list[str] = field(default_factory=list)
    include_paths: list[str] = field(default_factory=list)
    exclude_paths: list[str] = field(default_factory=list)

    check_externals: bool = DEFAULT_CHECK_EXTERNALS
    collect_meta: list[MetaType] = field(default_factory=list)
    redirect_scope: RedirectScope = RedirectScope.REQUESTED

    delay_seconds: float = DEFAULT_DELAY_SECONDS
    backend: FetchBackend = FetchBackend.SELENIUM
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    headless: bool = DEFAULT_HEADLESS

    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    retry_exponent: float = DEFAULT_RETRY_EXPONENT

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    lighthouse_binary: str = DEFAULT_LIGHTHOUSE_BINARY

    _canonical_host: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.seed_url = (self.seed_url or "").strip()
        if not self.seed_url:
            raise ConfigurationError("A seed URL is required")
        if not is_http_url(self.seed_url):
            raise ConfigurationError(f"Seed URL must be an absolute http(s) URL: {self.seed_url!r}")

        try:
            self._canonical_host = canonical_host_from_url(self.seed_url)
        except MalformedUrl as exc:
            raise ConfigurationError(str(exc)) from exc

        for alias in self.domain_aliases:
            if not is_http_url(alias):
                raise ConfigurationError(f"Domain alias must be an absolute http(s) URL: {alias!r}")

        self.collect_meta = parse_meta_types(self.collect_meta)
        self.backend = _to_enum(FetchBackend, self.backend, "backend")
        self.redirect_scope = _to_enum(RedirectScope, self.redirect_scope, "redirect_scope")

        if self.delay_seconds < 0:
            raise ConfigurationError("delay_seconds must be >= 0")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be > 0")
        if self.retry_attempts < 1:
            raise ConfigurationError("retry_attempts must be >= 1")
        if self.retry_base_delay_seconds < 0:
            raise ConfigurationError("retry_base_delay_seconds must be >= 0")
        if self.retry_exponent < 1:
            raise ConfigurationError("retry_exponent must be >= 1")

    @property
    def canonical_host(self) -> str:
        """Host (and non-default port) every internal URL is rewritten to."""

        return self._canonical_host

    @property
    def valid_domains(self) -> list[str]:
        """Aliases plus the seed URL; their origins count as internal."""

        return [*self.domain_aliases, self.seed_url]

    @property
    def collects_meta(self) -> bool:
        return bool(self.collect_meta)

    def collects(self, meta_type: MetaType) -> bool:
        return meta_type in self.collect_meta

    def request_headers(self) -> dict[str, str]:
        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "seed_url": self.seed_url,
            "domain_aliases": list(self.domain_aliases),
            "include_paths": list(self.include_paths),
            "exclude_paths": list(self.exclude_paths),
            "check_externals": self.check_externals,
            "collect_meta": [meta_type.value for meta_type in self.collect_meta],
            "redirect_scope": self.redirect_scope.value,
            "delay_seconds": self.delay_seconds,
            "backend": self.backend.value,
            "timeout_seconds": self.timeout_seconds,
            "headless": self.headless,
            "retry_attempts": self.retry_attempts,
            "retry_base_delay_seconds": self.retry_base_delay_seconds,
            "retry_exponent": self.retry_exponent,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "lighthouse_binary": self.lighthouse_binary,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        seed_url = payload.get("seed_url")
        if not seed_url:
            raise ConfigurationError("Config missing required key: 'seed_url'")

        return cls(
            seed_url=str(seed_url),
            domain_aliases=_as_str_list(payload.get("domain_aliases"), "domain_aliases"),
            include_paths=_as_str_list(payload.get("include_paths"), "include_paths"),
            exclude_paths=_as_str_list(payload.get("exclude_paths"), "exclude_paths"),
            check_externals=_as_bool(
                payload.get("check_externals", DEFAULT_CHECK_EXTERNALS),
                "check_externals",
            ),
            collect_meta=parse_meta_types(payload.get("collect_meta")),
            redirect_scope=_to_enum(
                RedirectScope,
                payload.get("redirect_scope", RedirectScope.REQUESTED.value),
                "redirect_scope",
            ),
            delay_seconds=_as_float(payload.get("delay_seconds", DEFAULT_DELAY_SECONDS), "delay_seconds"),
            backend=_to_enum(
                FetchBackend,
                payload.get("backend", FetchBackend.SELENIUM.value),
                "backend",
            ),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            headless=_as_bool(payload.get("headless", DEFAULT_HEADLESS), "headless"),
            retry_attempts=_as_int(payload.get("retry_attempts", DEFAULT_RETRY_ATTEMPTS), "retry_attempts"),
            retry_base_delay_seconds=_as_float(
                payload.get("retry_base_delay_seconds", DEFAULT_RETRY_BASE_DELAY_SECONDS),
                "retry_base_delay_seconds",
            ),
            retry_exponent=_as_float(
                payload.get("retry_exponent", DEFAULT_RETRY_EXPONENT),
                "retry_exponent",
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            lighthouse_binary=str(payload.get("lighthouse_binary", DEFAULT_LIGHTHOUSE_BINARY)),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config_dict(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain dict without validating it."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigurationError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    try:
        if suffix == ".json":
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        else:
            payload = _load_yaml(config_path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not read config {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    return CrawlConfig.from_dict(load_config_dict(path))


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ConfigurationError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "load_config",
    "load_config_dict",
    "parse_meta_types",
    "save_config",
]
