"""Text ingestion paths: scanner / label files and typed or pasted input."""

import re
from typing import List

from core.models.traceability import TraceabilityRecord
from label_parser.normalize import (
    TRACE_NUMBER_RE,
    is_label_number,
    normalize_trace_number,
)
from label_parser.parser import LabelParseResult, parse_label_text, split_lines


# Separators between identifiers typed or pasted on one line
_TOKEN_SPLIT_RE = re.compile(r"[,;\t]+")
_LABEL_TOKEN_RE = re.compile(r"^[A-Za-z]\d{6,}$")


def records_from_scanner_text(text: str) -> LabelParseResult:
    """Parse label-format scanner output."""
    return parse_label_text(text)


def _is_identifier(token: str) -> bool:
    normalized = normalize_trace_number(token)
    if TRACE_NUMBER_RE.match(normalized):
        return True
    return is_label_number(normalized) and bool(_LABEL_TOKEN_RE.match(normalized))


def _split_words(segment: str) -> List[str]:
    """Split a segment on whitespace, keeping space-grouped numbers together.

    Consecutive digit groups are rejoined only when together they normalize
    to exactly 12 digits ("0021 9220 5667"); otherwise each word stands alone.
    """
    words = segment.split()
    tokens = []
    i = 0
    while i < len(words):
        joined = words[i]
        end = i + 1
        while end < len(words):
            digits = normalize_trace_number(joined)
            if not digits.isdigit() or len(digits) >= 12:
                break
            candidate = f"{joined} {words[end]}"
            if not normalize_trace_number(candidate).isdigit():
                break
            joined = candidate
            end += 1

        if end > i + 1 and TRACE_NUMBER_RE.match(normalize_trace_number(joined)):
            tokens.append(joined)
            i = end
        else:
            tokens.append(words[i])
            i += 1
    return tokens


def extract_identifiers(text: str) -> List[str]:
    """Pull bare identifiers out of typed or pasted text.

    Identifiers are separated by commas, semicolons, tabs or whitespace.
    Hyphens inside an identifier, and spaces inside a 12-digit number typed
    in groups, are kept as typed; tokens that do not look like a traceability
    or label number are ignored.
    """
    identifiers = []
    for line in split_lines(text):
        for segment in _TOKEN_SPLIT_RE.split(line):
            for token in _split_words(segment):
                if _is_identifier(token):
                    identifiers.append(token)
    return identifiers


def parse_typed_input(text: str) -> LabelParseResult:
    """Parse a barcode scan, manual entry or paste.

    Label-format text is parsed as such, so label-number primaries come back
    in excluded_count. Otherwise every recognizable identifier becomes a bare
    record with unknown breed and date; label numbers among them are kept
    for the ingest store to exclude and count.
    """
    parsed = parse_label_text(text)
    if parsed.record_count:
        return parsed

    return LabelParseResult(records=[
        TraceabilityRecord(trace_number=identifier)
        for identifier in extract_identifiers(text)
    ])


def records_from_typed_input(text: str) -> List[TraceabilityRecord]:
    """Records from a barcode scan, manual entry or paste."""
    return parse_typed_input(text).records
