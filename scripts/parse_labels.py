"""Parse a scanner / label text file and print the records it yields."""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from label_parser import format_trace_number, parse_label_text


def main() -> None:
    parser = argparse.ArgumentParser(description="Parse delivery label text")
    parser.add_argument("path", type=Path, help="Label text file (UTF-8)")
    args = parser.parse_args()

    text = args.path.read_text(encoding="utf-8-sig")
    result = parse_label_text(text)

    print("=" * 80)
    print(f"LABEL PARSE: {args.path.name}")
    print("=" * 80)

    for i, record in enumerate(result.records, start=1):
        delivery = record.delivery
        print(f"\n[{i}] {format_trace_number(record.trace_number)}")
        print(f"    Produced:     {record.production_or_birth_date}")
        print(f"    Label:        {record.breed_label}")
        if delivery is not None:
            print(f"    Destination:  {delivery.destination or '-'}")
            print(f"    Processing:   {delivery.processing_type or '-'}")

    print(f"\n{'-' * 40}")
    print(f"Record lines:     {result.record_count}")
    print(f"Records:          {len(result.records)}")
    print(f"Label excluded:   {result.excluded_count}")
    print(f"Skipped lines:    {result.skipped_lines}")
    if result.message:
        print(f"\n{result.message}")


if __name__ == "__main__":
    main()
