"""Label Parser - delivery label and scanner text parsing.

This package turns raw scanner output and label files into
TraceabilityRecords, recovering the delivery metadata printed on each label:
- Fixed-position pipe-delimited record lines
- Optional second line carrying a secondary label number
- Business-rule exclusion of letter-prefixed (internal label) numbers

Usage:
    from label_parser import parse_label_text

    result = parse_label_text(open("scan.txt", encoding="utf-8").read())
    if result.is_empty:
        print(result.message)
    for record in result.records:
        print(record.trace_number, record.delivery.destination)
"""

from label_parser.parser import (
    LabelParseResult,
    NO_IDENTIFIERS_MESSAGE,
    parse_label_text,
    split_lines,
    is_record_start,
)
from label_parser.normalize import (
    normalize_trace_number,
    is_valid_trace_number,
    is_label_number,
    format_trace_number,
)

__all__ = [
    # Parser
    "LabelParseResult",
    "NO_IDENTIFIERS_MESSAGE",
    "parse_label_text",
    "split_lines",
    "is_record_start",
    # Normalization
    "normalize_trace_number",
    "is_valid_trace_number",
    "is_label_number",
    "format_trace_number",
]
