"""
Run the catalog sync from the command line.

Calls run_batch repeatedly, passing next_cursor back, until the catalog is
exhausted or --max-batches is reached.

Usage:
    # Full sync from the start of the catalog
    python scripts/run_sync.py

    # Resume from a cursor, 50 products per batch, at most 3 batches
    python scripts/run_sync.py --cursor eyJsYXN0X2lkIjo... --page-size 50 --max-batches 3
"""

import argparse
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

import structlog

from services.sync_service import get_sync_service
from services.settings_service import get_settings_service
from exceptions import AppError

logger = structlog.get_logger(__name__)


def run(cursor=None, page_size=None, max_batches=None) -> dict:
    """
    Loop batches until next_cursor is None.

    Returns:
        Totals across all batches plus the last cursor seen
    """
    service = get_sync_service()
    credentials = get_settings_service().get_sync_credentials()

    totals = {"batches": 0, "processed": 0, "failed": 0, "skipped": 0, "cursor": cursor}

    while True:
        result = service.run_batch(cursor=cursor, page_size=page_size, credentials=credentials)

        totals["batches"] += 1
        totals["processed"] += result.processed_count
        totals["failed"] += result.failed_count
        totals["skipped"] += result.skipped_count
        totals["cursor"] = result.next_cursor

        print(
            f"  Batch {totals['batches']}: "
            f"{result.processed_count} synced, "
            f"{result.failed_count} failed, "
            f"{result.skipped_count} skipped"
        )
        for item in result.results:
            if item.error:
                print(f"    ✗ {item.handle or item.source_id}: {item.error}")

        cursor = result.next_cursor
        if cursor is None:
            break
        if max_batches and totals["batches"] >= max_batches:
            print(f"  Stopping after {max_batches} batches; resume with --cursor {cursor}")
            break

    return totals


def main():
    parser = argparse.ArgumentParser(
        description="Sync store products to the authentication service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--cursor",
        default=None,
        help="Resume from this cursor (printed by a previous run)"
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Products per batch (default: SYNC_PAGE_SIZE)"
    )
    parser.add_argument(
        "--max-batches",
        type=int,
        default=None,
        help="Stop after this many batches"
    )
    args = parser.parse_args()

    print("Catalog sync")
    try:
        totals = run(
            cursor=args.cursor,
            page_size=args.page_size,
            max_batches=args.max_batches
        )
    except AppError as e:
        logger.error("sync_run_failed", code=e.code, error=e.message)
        print(f"✗ {e.message}")
        sys.exit(1)

    print(
        f"\n✓ Done: {totals['processed']} synced, {totals['failed']} failed, "
        f"{totals['skipped']} skipped in {totals['batches']} batches"
    )


if __name__ == "__main__":
    main()
