#!/usr/bin/env python3
"""
Medicine catalogue quality checker.

Scores every medicine for completeness and prints missing-field counts,
invalid/duplicate barcodes and the lowest-quality records.

Usage:
    python scripts/check_catalog_quality.py
    python scripts/check_catalog_quality.py --json
"""

import argparse
import asyncio
import dataclasses
import json
import sys

from vetcepi.config import get_settings
from vetcepi.core.catalog_quality import QualityReport, recommendations
from vetcepi.core.errors import DatabaseError
from vetcepi.infrastructure.database import DatabaseSessionManager
from vetcepi.infrastructure.record_store import SqlRecordStore
from vetcepi.services.medicine_catalog import MedicineCatalog

LOW_QUALITY_SHOWN = 20


def print_report(report: QualityReport) -> None:
    line = "=" * 48
    print(line)
    print("MEDICINE CATALOGUE QUALITY REPORT")
    print(line)

    if not report.total:
        print("\nNo medicines found in database.")
        return

    print("\nOverall:")
    print(f"   Total medicines:       {report.total:,}")
    print(f"   Complete (>=90%):      {report.complete:,} ({report.share(report.complete)}%)")
    print(f"   Partial (70-89%):      {report.partial:,} ({report.share(report.partial)}%)")
    print(f"   Incomplete (<70%):     {report.incomplete:,} ({report.share(report.incomplete)}%)")
    print(f"   Average quality:       {report.average_score}%")

    print("\nMissing data:")
    for name, count in report.missing.items():
        print(f"   Missing {name + ':':<16}{count:,}")

    print("\nData issues:")
    print(f"   Invalid barcodes:      {report.invalid_barcodes:,}")
    print(f"   Duplicate barcodes:    {report.duplicate_barcodes:,}")

    if report.low_quality:
        print("\nLow quality records (< 70% complete):")
        for rec in report.low_quality[:LOW_QUALITY_SHOWN]:
            print(f"   - {rec.name} ({rec.score}%)")
        if len(report.low_quality) > LOW_QUALITY_SHOWN:
            print(f"   ... and {len(report.low_quality) - LOW_QUALITY_SHOWN} more")

    tips = recommendations(report)
    if tips:
        print("\nRecommendations:")
        for tip in tips:
            print(f"   - {tip}")


async def run(as_json: bool) -> int:
    settings = get_settings()
    manager = DatabaseSessionManager(settings.database_url)
    try:
        report = await MedicineCatalog(SqlRecordStore(manager)).quality_report()
    except DatabaseError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1
    finally:
        await manager.dispose()

    if as_json:
        print(json.dumps(dataclasses.asdict(report), indent=2))
    else:
        print_report(report)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Check medicine catalogue quality")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.json)))


if __name__ == "__main__":
    main()
