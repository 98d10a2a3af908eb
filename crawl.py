"""CLI entrypoint for a resumable single-site crawl."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from linkcrawler import ConfigurationError, CrawlConfig, Crawler, load_config_dict
from linkcrawler.constants import DEFAULT_OUTPUT_DIR
from linkcrawler.types import FetchBackend, MetaType, RedirectScope


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Crawl every internal page reachable from a seed URL and record "
            "broken, external and unreachable links. Re-running resumes the crawl."
        ),
    )

    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Seed URL. Overrides `seed_url` from --config.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path(DEFAULT_OUTPUT_DIR),
        help="Directory for the state, metadata and log files.",
    )

    parser.add_argument(
        "--domain_alias",
        action="append",
        default=[],
        help="Extra origin treated as the same site as the seed (repeatable).",
    )
    parser.add_argument(
        "--only_path",
        action="append",
        default=[],
        help="Path glob; when set, paths not matching every glob are external (repeatable).",
    )
    parser.add_argument(
        "--exclude_path",
        action="append",
        default=[],
        help="Path glob treated as external (repeatable).",
    )
    parser.add_argument(
        "--check_externals",
        action="store_true",
        default=None,
        help="Also navigate external links to check whether they are alive.",
    )
    parser.add_argument(
        "--collect_meta",
        type=str,
        default=None,
        help=(
            "Collect metadata of crawled pages. Types: "
            f"{', '.join(meta_type.value for meta_type in MetaType)} (comma-separated)."
        ),
    )
    parser.add_argument(
        "--lighthouse",
        action="store_true",
        help="Run lighthouse on crawled pages (same as adding `lighthouse` to --collect_meta).",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Pause between two page fetches in ms (default 500).",
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=[backend.value for backend in FetchBackend],
        default=None,
    )
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument(
        "--redirect_scope",
        type=str,
        choices=[scope.value for scope in RedirectScope],
        default=None,
        help="Classify a navigated page by the requested URL or by its final URL.",
    )
    parser.add_argument("--user_agent", type=str, default=None)
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window (selenium backend).",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_config_dict(args.config)

    if args.url:
        payload["seed_url"] = args.url
    if not payload.get("seed_url"):
        raise ConfigurationError("No seed URL provided. Pass a URL or use --config.")

    if args.domain_alias:
        payload["domain_aliases"] = list(args.domain_alias)
    if args.only_path:
        payload["include_paths"] = list(args.only_path)
    if args.exclude_path:
        payload["exclude_paths"] = list(args.exclude_path)
    if args.check_externals is not None:
        payload["check_externals"] = args.check_externals

    if args.collect_meta is not None:
        payload["collect_meta"] = args.collect_meta
    if args.lighthouse:
        current = payload.get("collect_meta") or []
        if isinstance(current, str):
            current = current.split(",")
        payload["collect_meta"] = [*current, MetaType.LIGHTHOUSE.value]

    if args.delay is not None:
        payload["delay_seconds"] = args.delay / 1000.0
    if args.backend is not None:
        payload["backend"] = args.backend
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.redirect_scope is not None:
        payload["redirect_scope"] = args.redirect_scope
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent
    if args.headful:
        payload["headless"] = False

    return CrawlConfig.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # Driver and connection-pool chatter drowns the per-page lines in DEBUG.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(result: dict[str, Any], *, print_stats_json: bool) -> None:
    paths = result.get("paths", {})
    counts = result.get("counts", {})
    stats = result.get("stats", {})

    print("\n=== Crawl Complete ===")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"state: {paths.get('state')}")
    print(f"metadata: {paths.get('metadata')}")

    print("\n--- URLs ---")
    for key in ["visited", "pending", "unreachable", "external"]:
        print(f"{key}: {counts.get(key, 0)}")

    print("\n--- Core Stats ---")
    pages = stats.get("pages", {})
    for key in ["visited", "not_found", "navigation_failed"]:
        if key in pages:
            print(f"{key}: {pages[key]}")
    if "duration_seconds" in stats:
        print(f"duration_seconds: {stats['duration_seconds']:.1f}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        config = build_config(args)
        crawler = Crawler(config, output_dir=args.output_dir)
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 2

    logging.info(
        "Starting crawl: seed=%s, canonical_host=%s, backend=%s, output_dir=%s",
        config.seed_url,
        config.canonical_host,
        config.backend.value,
        args.output_dir,
    )

    try:
        result = crawler.run()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1

    print_summary(result, print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
