"""
Cleanup old chat attachments.

Usage:
    vectorius-cleanup-attachments [--dry-run] [--days N]

Deletes the stored images of attachments older than the retention period and
soft-deletes their rows; extraction data on the rows is kept.
"""
import argparse
import logging
import sys
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from vectorius.app import create_app
from vectorius.scripts.generate_persona_token import load_cli_settings, print_config_errors
from vectorius.services import attachment_service
from vectorius.services.provider_client import StorageClient
from vectorius.utils import now_utc

logger = logging.getLogger(__name__)


def parse_args(argv=None, default_days=None):
    parser = argparse.ArgumentParser(description="Delete chat attachments past the retention period")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be deleted without deleting")
    parser.add_argument("--days", type=int, default=default_days, help="Retention period in days")
    return parser.parse_args(argv)


def main(argv=None):
    settings, errors = load_cli_settings()
    args = parse_args(argv, default_days=settings["attachments"]["retention_days"])
    if errors:
        print_config_errors(errors)
        sys.exit(1)

    now = now_utc()
    cutoff = now - timedelta(days=args.days)
    print(f"Cleanup: deleting attachments older than {args.days} days (before {cutoff.isoformat()})")
    if args.dry_run:
        print("DRY RUN -- no deletions will occur")

    storage = StorageClient.from_settings(settings)
    with create_app(settings).app_context():
        try:
            report = attachment_service.sweep(
                storage,
                days=args.days,
                dry_run=args.dry_run,
                batch_size=settings["attachments"]["batch_size"],
                now=now,
            )
        except SQLAlchemyError as e:
            print(f"DB error: {e}", file=sys.stderr)
            sys.exit(1)

        if not report.candidates:
            print("No attachments to clean up.")
            return report

        print(f"Found {len(report.candidates)} attachment(s) to delete")
        if report.dry_run:
            for attachment in report.candidates:
                print(
                    f"  [DRY RUN] Would delete: {attachment.file_name} (path: {attachment.storage_path}, "
                    f"id: {attachment.id}, created: {attachment.created_at.isoformat()})"
                )
            return report

    if report.failed_batches:
        print(f"Storage delete failed for batch(es): {', '.join(str(b) for b in report.failed_batches)}")
    print(f"Soft-deleted {report.soft_deleted} attachment record(s) (extraction data preserved)")
    print("Cleanup complete.")
    return report


if __name__ == "__main__":
    main()
