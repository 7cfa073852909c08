"""Cron entry point for sweeping expired, processed and discarded temp media."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass

from temp_media.config import load_config
from temp_media.dependencies import build_services
from temp_media.logging import configure_logging
from temp_media.media.media_models import SweepOptions, SweepReport, TransferStats


@dataclass(slots=True)
class CleanupSummary:
    report: SweepReport
    stats: TransferStats


def perform_cleanup(*, expired_only: bool = False, processed_only: bool = False, dry_run: bool = False) -> CleanupSummary:
    """Run one sweep and collect statistics taken before it."""
    config = load_config()
    services = build_services(config)
    stats = services.transfer.get_transfer_stats()
    report = services.cleanup.sweep(
        SweepOptions(expired_only=expired_only, processed_only=processed_only, dry_run=dry_run)
    )
    return CleanupSummary(report=report, stats=stats)


def render_table(summary: CleanupSummary) -> str:
    """Format the pre-sweep statistics as a two-column table."""
    stats = summary.stats
    rows = [
        ("Total temp media", stats.total),
        ("Active", stats.active),
        ("Processed", stats.processed),
        ("Expired", stats.expired),
        ("Discarded", stats.discarded),
    ]
    width = max(len(label) for label, _ in rows)
    lines = [f"{'Metric'.ljust(width)}  Count", f"{'-' * width}  -----"]
    lines.extend(f"{label.ljust(width)}  {value}" for label, value in rows)
    return "\n".join(lines)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cleanup expired and processed temp media.")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--expired-only", action="store_true", help="Only remove expired temp media.")
    scope.add_argument("--processed-only", action="store_true", help="Only remove processed temp media.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without deleting files.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        summary = perform_cleanup(
            expired_only=args.expired_only,
            processed_only=args.processed_only,
            dry_run=args.dry_run,
        )
    except Exception as exc:
        print(f"cleanup failed: {exc}", file=sys.stderr)
        return 2

    report = summary.report
    print(render_table(summary), file=sys.stdout)
    if report.skipped:
        print("cleanup skipped, another sweep is running", file=sys.stdout)
        return 0

    verb = "would remove" if report.dry_run else "removed"
    print(
        f"cleanup {'dry-run' if report.dry_run else 'done'}, {verb} "
        f"expired={report.expired_removed}, processed={report.processed_removed}, "
        f"discarded={report.discarded_removed}, total={report.total_removed}",
        file=sys.stdout,
    )
    if report.timed_out:
        print("cleanup timed out before finishing", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
