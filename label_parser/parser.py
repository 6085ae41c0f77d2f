"""Delivery Label Parser.

Turns scanner output / label files into TraceabilityRecords. Each record
occupies one or two physical lines:

    20251210|한우[설도]|서울길원초등학교(올본)|다짐|14.1kg|002192205667
    L0021922056671|음성농협축산물공판장

Line 1 (pipe-delimited, fixed positions):
    0: production date YYYYMMDD  (a line is a record start iff this is 8 digits)
    1: "Product[Part]"
    2: "Destination(optional code)"
    3: processing type
    4: "<number>kg"
    5: primary traceability number

Line 2 (optional): secondary label number in field 0. It only decides
whether the record consumed one or two lines and is never emitted.

Malformed lines are skipped one at a time; nothing here raises.
"""

import re
from typing import List, Optional

from pydantic import BaseModel, Field

from core.models.traceability import DeliveryInfo, TraceabilityRecord
from label_parser.normalize import is_label_number, is_secondary_label_number


NO_IDENTIFIERS_MESSAGE = "No traceability numbers found"

_BOM = "﻿"
_DATE_FIELD_RE = re.compile(r"^\d{8}$")
_PRODUCT_PART_RE = re.compile(r"^(.+?)\[(.+?)\]$")
_WEIGHT_SUFFIX_RE = re.compile(r"kg$", re.IGNORECASE)
_DESTINATION_CODE_RE = re.compile(r"\s*\([^()]*\)\s*$")

# Field positions on the first line of a record
F_DATE = 0
F_PRODUCT = 1
F_DESTINATION = 2
F_PROCESSING = 3
F_WEIGHT = 4
F_TRACE_NUMBER = 5


class LabelParseResult(BaseModel):
    """Outcome of parsing one block of label text.

    Attributes:
        records: Records emitted, in input order
        excluded_count: Record lines whose primary number was a label number
        skipped_lines: Lines that were not a record start (headers, junk)
        record_count: Record starts found, emitted or not
        secondary_numbers: Secondary label numbers seen (diagnostic only)
    """
    records: List[TraceabilityRecord] = Field(default_factory=list)
    excluded_count: int = 0
    skipped_lines: int = 0
    record_count: int = 0
    secondary_numbers: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def message(self) -> Optional[str]:
        """The "nothing found" condition, or None when records were found."""
        if self.is_empty:
            return NO_IDENTIFIERS_MESSAGE
        return None


def split_lines(text: str) -> List[str]:
    """Strip a BOM, split on LF / CRLF, trim lines and drop empty ones."""
    if not text:
        return []
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    lines = (line.strip() for line in re.split(r"\r?\n", text))
    return [line for line in lines if line]


def _split_fields(line: str) -> List[str]:
    return [f.strip() for f in line.split("|")]


def _field(fields: List[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def is_record_start(line: str) -> bool:
    """Whether a line's first pipe field is an 8-digit date."""
    return bool(_DATE_FIELD_RE.match(_split_fields(line)[0]))


def split_product_part(value: str) -> tuple:
    """Split "Product[Part]" into (product, part); part is '-' when absent."""
    match = _PRODUCT_PART_RE.match(value)
    if not match:
        return value, "-"
    return match.group(1), match.group(2)


def strip_weight_unit(value: str) -> str:
    """Remove a trailing case-insensitive "kg" from a weight field."""
    return _WEIGHT_SUFFIX_RE.sub("", value).strip()


def strip_destination_code(value: str) -> Optional[str]:
    """Remove a trailing "(...)" code from a destination; empty → None."""
    destination = _DESTINATION_CODE_RE.sub("", value).strip()
    return destination or None


def format_production_date(value: str) -> str:
    """YYYYMMDD → YYYY-MM-DD."""
    return f"{value[:4]}-{value[4:6]}-{value[6:8]}"


def build_record(fields: List[str]) -> TraceabilityRecord:
    """Build a record from the fields of a record-start line."""
    product_name, part_name = split_product_part(_field(fields, F_PRODUCT))
    weight = strip_weight_unit(_field(fields, F_WEIGHT))

    return TraceabilityRecord(
        trace_number=_field(fields, F_TRACE_NUMBER),
        breed_label=f"{product_name} / {part_name} ({weight}kg)",
        production_or_birth_date=format_production_date(_field(fields, F_DATE)),
        delivery=DeliveryInfo(
            destination=strip_destination_code(_field(fields, F_DESTINATION)),
            cut_name=part_name,
            processing_type=_field(fields, F_PROCESSING),
            weight_kg=weight,
        ),
    )


def parse_label_text(text: str) -> LabelParseResult:
    """Parse a block of label / scanner text into traceability records.

    Args:
        text: Raw file or scanner contents

    Returns:
        LabelParseResult; an empty result is reported through `message`
    """
    lines = split_lines(text)
    result = LabelParseResult()

    i = 0
    while i < len(lines):
        fields = _split_fields(lines[i])
        if not _DATE_FIELD_RE.match(fields[0]):
            result.skipped_lines += 1
            i += 1
            continue

        result.record_count += 1
        consumed = 1
        if i + 1 < len(lines):
            secondary = _split_fields(lines[i + 1])[0]
            if is_secondary_label_number(secondary):
                result.secondary_numbers.append(secondary)
                consumed = 2

        primary = _field(fields, F_TRACE_NUMBER)
        if not primary:
            result.skipped_lines += 1
        elif is_label_number(primary):
            result.excluded_count += 1
        else:
            result.records.append(build_record(fields))

        i += consumed

    return result
