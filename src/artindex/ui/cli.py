from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from artindex.app import ingest_and_enqueue, ingest_wallet, process_queue, queue_stats
from artindex.config import configure_logging
from artindex.config.ingest import SUPPORTED_PROVIDERS
from artindex.domain.model import ImportStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index wallet tokens into the art catalog")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Fetch a wallet's tokens and queue them")
    ingest.add_argument("wallet", type=str, help="Wallet address to index")
    ingest.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        default=None,
        help="Upstream provider (defaults to ARTINDEX_PROVIDER or alchemy)",
    )
    ingest.add_argument(
        "--expected-count",
        type=int,
        default=None,
        help="Known number of tokens held; skips the provider count lookup",
    )
    ingest.add_argument(
        "--filter-spam",
        action="store_true",
        help="Drop tokens the provider classifies as spam",
    )
    ingest.add_argument(
        "--enrich",
        action="store_true",
        help="Resolve creator profiles and collection details while paging",
    )
    ingest.add_argument(
        "--no-sniff",
        action="store_true",
        help="Skip MIME detection of media URLs",
    )
    ingest.add_argument(
        "--no-enqueue",
        action="store_true",
        help="Only fetch and normalize; do not write to the index queue",
    )

    process = subparsers.add_parser("process-queue", help="Import queued records into the catalog")
    process.add_argument(
        "--status",
        choices=[status.value for status in ImportStatus],
        default=ImportStatus.PENDING.value,
        help="Queue status to process (default: %(default)s)",
    )
    process.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of entries to process (defaults to config)",
    )

    subparsers.add_parser("stats", help="Show index queue counts per status")

    args = parser.parse_args(list(argv))
    if getattr(args, "expected_count", None) is not None and args.expected_count < 0:
        raise ValueError("Expected count must be non-negative")
    if getattr(args, "limit", None) is not None and args.limit <= 0:
        raise ValueError("Limit must be positive")
    return args


def _run_ingest(args: argparse.Namespace) -> None:
    sniff_mime = False if args.no_sniff else None
    if args.no_enqueue:
        result = ingest_wallet(
            args.wallet,
            provider=args.provider,
            expected_count=args.expected_count,
            enrichment=args.enrich,
            filter_spam=args.filter_spam,
            sniff_mime=sniff_mime,
        )
    else:
        result, summary = ingest_and_enqueue(
            args.wallet,
            provider=args.provider,
            expected_count=args.expected_count,
            enrichment=args.enrich,
            filter_spam=args.filter_spam,
            sniff_mime=sniff_mime,
        )
        log.info("Queued %d new records, merged %d", summary.created, summary.merged)

    log.info(
        "Ingest finished: records=%d, expected=%s, pages=%d, strategies=%s, skipped=%d",
        len(result.records),
        result.expected_count,
        result.pages_processed,
        ", ".join(result.strategies_used),
        result.skipped,
    )
    for warning in result.warnings:
        log.warning("Pagination warning: %s", warning)


def _run_process_queue(args: argparse.Namespace) -> None:
    summary = process_queue(status=ImportStatus(args.status), limit=args.limit)
    log.info(
        "Queue processing finished: processed=%d, successful=%d, failed=%d",
        summary.processed,
        summary.successful,
        summary.failed,
    )
    for error in summary.errors:
        log.error("Queue error: %s", error)


def _run_stats() -> None:
    for status, count in queue_stats().items():
        log.info("%s: %d", status, count)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "ingest":
            _run_ingest(parsed_args)
        elif parsed_args.command == "process-queue":
            _run_process_queue(parsed_args)
        elif parsed_args.command == "stats":
            _run_stats()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ValueError:
        log.exception("Invalid input")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during indexing")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
