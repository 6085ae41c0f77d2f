"""Resolve grading certificates for traceability numbers against the live API.

Usage:
    python scripts/resolve_certificates.py 002192205667 002-1910-4621-6
"""

import argparse
import asyncio
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from core.errors import ConfigurationError
from core.models.certificate import LookupStatus
from core.models.traceability import TraceabilityRecord
from certificate_resolver import ResolutionRun
from connectors.ekape import EkapeClient, EkapeConfig


def print_progress(run: ResolutionRun) -> None:
    print(f"  ... {run.loaded}/{run.total} resolved")


async def resolve(numbers) -> ResolutionRun:
    settings = load_settings()
    settings.require_api_key()

    records = [TraceabilityRecord(trace_number=number) for number in numbers]
    async with EkapeClient(EkapeConfig.from_settings(settings)) as client:
        run = ResolutionRun(records, client, on_progress=print_progress)
        await run.run()
    return run


def main() -> None:
    parser = argparse.ArgumentParser(description="Resolve grading certificates")
    parser.add_argument("numbers", nargs="+", help="Traceability numbers (hyphens allowed)")
    args = parser.parse_args()

    try:
        run = asyncio.run(resolve(args.numbers))
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    print("=" * 80)
    print(f"RESOLUTION {run.run_id}: {run.loaded}/{run.total} distinct number(s)")
    print("=" * 80)

    for row in run.rows:
        result = row.result
        label = row.record.trace_number
        if result.status == LookupStatus.SUCCESS:
            data = result.data
            print(f"\n[{row.index}] {label}: SUCCESS ({data.total_count} issue(s))")
            for issue in data.issues:
                print(f"    {issue.issue_no}  {issue.issue_date or '-'}  {issue.abatt_name or '-'}")
            for detail in data.grade_details:
                print(
                    f"    grade {detail.quality_grade or '-'} / yield {detail.yield_grade or '-'}"
                    f"  {detail.carcass_weight or '-'}kg"
                )
            if result.partial:
                print(f"    grade detail pending: {data.grade_detail_diagnostic}")
        else:
            print(f"\n[{row.index}] {label}: {result.status.value.upper()} - {result.message}")


if __name__ == "__main__":
    main()
