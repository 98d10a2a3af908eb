"""Print broken, pending and unclassified links per crawled page."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from linkcrawler import CrawlSnapshot, build_link_report, format_link_report
from linkcrawler.storage import read_json


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report problematic anchors from a crawl's state and metadata files.",
    )
    parser.add_argument("--state", type=Path, required=True, help="Crawl state file (<host>.json).")
    parser.add_argument("--meta", type=Path, required=True, help="Metadata file (<host>.meta.json).")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")

    state = read_json(args.state)
    metadata = read_json(args.meta)
    if state is None or metadata is None:
        missing = args.state if state is None else args.meta
        logging.error("Could not read %s", missing)
        return 2

    try:
        snapshot = CrawlSnapshot.from_json(state)
    except ValueError as exc:
        logging.error("Malformed state file %s: %s", args.state, exc)
        return 2

    reports = build_link_report(metadata, snapshot)

    if args.json:
        json.dump([report.to_json() for report in reports], sys.stdout, indent=2)
        print()
        return 0

    for report in reports:
        print(format_link_report(report))
        print()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
