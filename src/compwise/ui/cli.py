# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from compwise.app import build_catalog, list_entities, load_entity_records
from compwise.config import CatalogConfig, ConfigurationError, configure_logging, get_catalog_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--base-url",
        type=str,
        help="Serve documents over HTTP from this URL (defaults to COMPWISE_BASE_URL)",
    )
    group.add_argument(
        "--data-dir",
        type=Path,
        help="Serve documents from this directory (defaults to COMPWISE_DATA_DIR)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browse company-wise problem catalogs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    entities = subparsers.add_parser("entities", help="List catalog entities")
    _add_source_arguments(entities)

    records = subparsers.add_parser("records", help="List the records of one entity")
    records.add_argument("name", type=str, help="Entity name, e.g. 'Goldman Sachs'")
    records.add_argument(
        "--limit",
        type=int,
        help="Maximum number of records to print",
    )
    _add_source_arguments(records)

    build = subparsers.add_parser("build-catalog", help="Index a local directory into a catalog")
    build.add_argument("data_dir", type=Path, help="Directory holding the entity folders")
    build.add_argument(
        "--output",
        type=Path,
        help="Catalog file to write (defaults to <data_dir>/data/companies.json)",
    )

    return parser.parse_args(list(argv))


def _resolve_config(args: argparse.Namespace) -> CatalogConfig:
    if args.base_url:
        return CatalogConfig(base_url=args.base_url)
    if args.data_dir:
        return CatalogConfig(data_dir=args.data_dir)
    return get_catalog_config()


def _print_entities(args: argparse.Namespace) -> None:
    result = list_entities(config=_resolve_config(args))
    if result.degraded:
        print(
            f"Warning: catalog unavailable, showing {result.origin} fallback data",
            file=sys.stderr,
        )
    for entity in result.entities:
        print(f"{entity.name}\t{entity.record_count}")


def _print_records(args: argparse.Namespace) -> None:
    if args.limit is not None and args.limit < 0:
        raise ValueError("--limit must be non-negative")
    loaded = load_entity_records(args.name, config=_resolve_config(args))
    records = loaded.records if args.limit is None else loaded.records[: args.limit]
    for record in records:
        tags = ", ".join(record.tags)
        print(
            f"{record.category}\t{record.frequency_score:g}\t{record.title}\t{record.link}\t{tags}"
        )
    for outcome in loaded.failed_sources:
        print(f"Warning: {outcome.source.path}: {outcome.error}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "entities":
            _print_entities(parsed_args)
        elif parsed_args.command == "records":
            _print_records(parsed_args)
        elif parsed_args.command == "build-catalog":
            target = build_catalog(parsed_args.data_dir, output=parsed_args.output)
            print(target)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, ValueError):
        log.exception("Invalid invocation")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
