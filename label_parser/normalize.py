"""Traceability Number Normalization Utilities.

Traceability numbers arrive hyphenated, spaced or bare depending on the
source. Two shapes are recognized:
1. A 12-digit government-issued number (the only shape the grading
   service can resolve)
2. A company-internal label number starting with a letter

Examples:
    "002-1234-5678-9"  → "002123456789"  (valid)
    "0021 9220 5667"   → "002192205667"  (valid)
    "L0021922056671"   → label number, never resolvable
"""

import re


TRACE_NUMBER_RE = re.compile(r"^\d{12}$")

# Secondary label numbers on delivery labels: uppercase letter + 10 or more digits
LABEL_NUMBER_RE = re.compile(r"^[A-Z]\d{10,}")

_SEPARATORS_RE = re.compile(r"[-\s]")


def normalize_trace_number(raw: str) -> str:
    """Remove hyphens and whitespace from a traceability number.

    Examples:
        >>> normalize_trace_number("002-1234-5678-9")
        '002123456789'
    """
    if not raw:
        return ""
    return _SEPARATORS_RE.sub("", raw)


def is_valid_trace_number(raw: str) -> bool:
    """Whether the number is exactly 12 digits once normalized."""
    return bool(TRACE_NUMBER_RE.match(normalize_trace_number(raw)))


def is_label_number(raw: str) -> bool:
    """Whether the number is an internal label id (starts with a letter).

    The check is case-insensitive and applies after normalization.
    """
    normalized = normalize_trace_number(raw)
    return bool(normalized) and normalized[0].isascii() and normalized[0].isalpha()


def is_secondary_label_number(field: str) -> bool:
    """Whether a label line's first field is a secondary label number."""
    return bool(LABEL_NUMBER_RE.match(field.strip()))


def format_trace_number(raw: str) -> str:
    """Format a 12-digit number for display as 3-4-4-1 groups.

    Anything that is not a valid 12-digit number is returned unchanged.

    Examples:
        >>> format_trace_number("002123456789")
        '002-1234-5678-9'
    """
    normalized = normalize_trace_number(raw)
    if not TRACE_NUMBER_RE.match(normalized):
        return raw
    return f"{normalized[:3]}-{normalized[3:7]}-{normalized[7:11]}-{normalized[11:]}"
