#!/usr/bin/env python3
"""
Sync a Google Drive folder into Shopify from the command line.

Usage:
    python scripts/sync_folder.py FOLDER_ID --token TOKEN                 # Images
    python scripts/sync_folder.py FOLDER_ID --token TOKEN --category spec # Spec sheets
    python scripts/sync_folder.py FOLDER_ID --token TOKEN --dry-run       # Match only
    python scripts/sync_folder.py --file-ids ID1,ID2 --token TOKEN        # Explicit files

Ctrl+C stops after the file in flight.
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

# Add project root to path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import structlog

from config import get_settings, configure_logging
from models.credentials import Credentials
from models.transfer import AssetCategory, RunSummary, TransferStatus
from services.upload_orchestrator import create_upload_orchestrator
from exceptions import AppError

logger = structlog.get_logger(__name__)


def print_summary(summary: RunSummary, verbose: bool = False) -> None:
    mode = " (dry run)" if summary.dry_run else ""
    print(f"\nRun {summary.run_id}{mode}: {summary.category.value}")
    print(f"  total:     {summary.total}")
    print(f"  succeeded: {summary.succeeded}")
    print(f"  skipped:   {summary.skipped}")
    print(f"  failed:    {summary.failed}")
    if summary.cancelled:
        print(f"  cancelled after {summary.processed} files")
    if summary.catalog_partial:
        print("  [WARN] catalog was only partially fetched")

    for result in summary.results:
        if result.status == TransferStatus.SUCCESS and not verbose:
            continue
        sku = result.matched_variant.sku if result.matched_variant else "-"
        reason = f" ({result.reason})" if result.reason else ""
        print(f"  [{result.status.value.upper()}] {result.file_name or result.source_file_id} -> {sku}{reason}")


def main():
    parser = argparse.ArgumentParser(
        description="Sync Drive assets into Shopify",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "folder_id",
        nargs="?",
        help="Drive folder ID to sync"
    )
    parser.add_argument(
        "--file-ids",
        type=str,
        help="Comma-separated Drive file IDs (instead of a folder)"
    )
    parser.add_argument(
        "--token",
        required=True,
        help="Drive OAuth access token"
    )
    parser.add_argument(
        "--refresh-token",
        help="Drive OAuth refresh token"
    )
    parser.add_argument(
        "--category",
        choices=[c.value for c in AssetCategory],
        default=AssetCategory.IMAGE.value,
        help="Asset category (default: image)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Match files without uploading or writing metadata"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="List successful files too"
    )
    args = parser.parse_args()

    if bool(args.folder_id) == bool(args.file_ids):
        parser.error("give either FOLDER_ID or --file-ids")

    settings = get_settings()
    configure_logging(settings)

    cancel_event = threading.Event()
    signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())

    category = AssetCategory(args.category)
    credentials = Credentials(access_token=args.token, refresh_token=args.refresh_token)

    try:
        orchestrator = create_upload_orchestrator(settings, credentials)
        if args.folder_id:
            summary = orchestrator.run_folder(
                args.folder_id,
                category,
                dry_run=args.dry_run,
                cancel_event=cancel_event,
            )
        else:
            file_ids = [f.strip() for f in args.file_ids.split(",") if f.strip()]
            summary = orchestrator.run_file_ids(
                file_ids,
                category,
                dry_run=args.dry_run,
                cancel_event=cancel_event,
            )
    except AppError as e:
        logger.error("sync_failed", code=e.code, error=e.message)
        print(f"[ERROR] {e.message}")
        sys.exit(1)

    print_summary(summary, verbose=args.verbose)
    sys.exit(1 if summary.failed else 0)


if __name__ == "__main__":
    main()
