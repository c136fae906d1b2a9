#!/usr/bin/env python3
"""CLI for syncing Plaud recordings into Notion."""

import argparse
import json
import sys
from pathlib import Path

from rich.table import Table

from common.env import ConfigError, env
from common.logger import console, get_logger, setup_logging, success, warning
from destination.base import DestinationError
from extract.usefulness import is_useful
from harvest.errors import HarvestError
from harvest.models import Harvest

from .ledger import LedgerError, SyncLedger, read_updated_at
from .payload import display_name, to_iso_timestamp
from .runner import SyncRunner, extract_drafts, resolve

logger = get_logger(__name__)


def cmd_run(args) -> int:
    """Log into Plaud, harvest recordings and sync them into Notion.

    Returns:
        Exit code (0 for success, 1 for fatal errors)
    """
    # Import here so offline commands work without a browser installed
    from destination.notion import NotionClient
    from harvest.browser import PlaudBrowser

    try:
        email = env.plaud_email()
        password = env.plaud_password()
        api_key = env.notion_api_key()
        database_id = env.notion_database_id()
        chunk_size = env.chunk_size()
    except ConfigError as e:
        logger.error(f"✗ {e}")
        return 1

    base_url = env.plaud_base_url()
    ledger = SyncLedger.load(args.ledger or env.ledger_path())
    logger.info(f"Previously synced: {len(ledger)} recording(s)")

    store = NotionClient(api_key, database_id)
    headless = env.headless() and not args.headed

    try:
        with PlaudBrowser(base_url, headless=headless) as browser:
            browser.login(email, password)
            harvest = browser.capture()

            runner = SyncRunner(
                store, ledger, base_url, chunk_size=chunk_size, dry_run=args.dry_run
            )
            stats = runner.run(
                harvest,
                fetch_detail=browser.fetch_detail if args.max_details > 0 else None,
                max_details=args.max_details,
            )
    except (HarvestError, DestinationError, LedgerError) as e:
        logger.error(f"✗ Sync failed: {e}")
        return 1
    finally:
        store.close()

    success(f"Done. {stats.summary()}")
    return 0


def _load_harvest(paths: list[Path]) -> Harvest:
    harvest = Harvest()
    for path in paths:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".html", ".htm"):
            harvest.html = (harvest.html or "") + text
            continue
        try:
            harvest.payloads.append((str(path), json.loads(text)))
        except ValueError:
            warning(f"{path} is not valid JSON, skipping")
    return harvest


def cmd_inspect(args) -> int:
    """Show what would be extracted from saved payloads, without any network call."""
    missing = [path for path in args.files if not path.is_file()]
    if missing:
        logger.error(f"✗ Not a file: {', '.join(str(p) for p in missing)}")
        return 1

    records = resolve(extract_drafts(_load_harvest(args.files)))
    if not records:
        warning("No recordings found")
        return 1

    ledger = SyncLedger.load(args.ledger or env.ledger_path())

    table = Table(title=f"{len(records)} recording(s)")
    table.add_column("Identity", overflow="fold")
    table.add_column("Title")
    table.add_column("Created")
    table.add_column("Summary", justify="right")
    table.add_column("Transcript", justify="right")
    table.add_column("Useful")
    table.add_column("Synced")

    for record in records:
        table.add_row(
            record.identity,
            display_name(record),
            to_iso_timestamp(record.created_at) or "-",
            str(len(record.summary)),
            str(len(record.transcript)),
            "[green]yes[/green]" if is_useful(record) else "[yellow]no[/yellow]",
            "yes" if record.identity in ledger else "no",
        )

    console.print(table)
    return 0


def cmd_ledger(args) -> int:
    """Show the size and age of the sync ledger."""
    path = args.ledger or env.ledger_path()
    ledger = SyncLedger.load(path)
    updated_at = read_updated_at(path) or "never"
    logger.info(f"Ledger {path}: {len(ledger)} recording(s), last updated {updated_at}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Mirror Plaud recordings into a Notion database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--ledger",
        type=Path,
        default=None,
        help="Ledger file (default: $SYNC_LEDGER_PATH or ./synced-recordings.json)",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Harvest recordings from Plaud and sync them into Notion",
        description=(
            "Log into Plaud, capture recordings and create or update Notion pages.\n\n"
            "Examples:\n"
            "  plaud-notion-sync run\n"
            "  plaud-notion-sync run --dry-run --headed\n"
            "  plaud-notion-sync run --max-details 10\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Decide and log without writing to Notion or the ledger",
    )
    run_parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    run_parser.add_argument(
        "--max-details",
        type=int,
        default=0,
        help="Open up to N detail pages to enrich low-signal recordings (default: 0)",
    )
    run_parser.set_defaults(func=cmd_run)

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Extract recordings from saved JSON payloads or HTML snapshots",
    )
    inspect_parser.add_argument("files", type=Path, nargs="+", help="Saved payload files")
    inspect_parser.set_defaults(func=cmd_inspect)

    ledger_parser = subparsers.add_parser("ledger", help="Show the sync ledger status")
    ledger_parser.set_defaults(func=cmd_ledger)

    args = parser.parse_args(argv)
    setup_logging(log_file=args.log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
