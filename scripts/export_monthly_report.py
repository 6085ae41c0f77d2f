"""Export the monthly ministry production report to an xlsx file."""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from production import (
    NoProductionDataError,
    build_monthly_report,
    list_logs_for_month,
    report_filename,
)


def main() -> None:
    settings = load_settings()

    parser = argparse.ArgumentParser(description="Export the monthly production report")
    parser.add_argument("month", help="Report month (YYYY-MM)")
    parser.add_argument("--db", type=Path, default=settings.db_path, help="Production log database")
    parser.add_argument("--out", type=Path, default=Path("."), help="Output directory")
    args = parser.parse_args()

    if not args.db.exists():
        print(f"Database not found: {args.db}")
        sys.exit(1)

    try:
        logs = list_logs_for_month(args.month, args.db)
        content = build_monthly_report(logs, args.month)
    except ValueError as e:
        print(f"Invalid month: {e}")
        sys.exit(1)
    except NoProductionDataError as e:
        print(str(e))
        sys.exit(1)

    args.out.mkdir(parents=True, exist_ok=True)
    out_path = args.out / report_filename(args.month)
    out_path.write_bytes(content)
    print(f"Wrote {len(logs)} row(s) to {out_path}")


if __name__ == "__main__":
    main()
