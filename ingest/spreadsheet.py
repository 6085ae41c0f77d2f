"""Spreadsheet ingestion (xlsx / xls / csv).

The header row is not assumed to be the first row: exported sheets often
carry a title block above the table. The first row holding an identifier
column name is taken as the header, and columns are matched by substring.
"""

from io import BytesIO
from typing import Dict, List, Optional

import pandas as pd

from core.errors import MeatDeskError
from core.models.traceability import TraceabilityRecord


IDENTIFIER_KEYWORDS = ("이력", "개체", "animal", "trace")
BREED_KEYWORDS = ("품종", "breed")
DATE_KEYWORDS = ("생년", "출생", "birth", "date", "일자")

# Rows scanned when looking for the header
HEADER_SCAN_ROWS = 20


class SpreadsheetFormatError(MeatDeskError):
    """The sheet has no recognizable identifier column."""
    pass


def _cell_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _identifier_text(value) -> str:
    """Identifier cell as text.

    Numeric cells lose the leading zeros of 12-digit traceability numbers,
    so they are padded back to 12 digits.
    """
    text = _cell_text(value)
    if pd.api.types.is_number(value) and text.isdigit() and len(text) < 12:
        return text.zfill(12)
    return text


def _matches(header: str, keywords) -> bool:
    lowered = header.lower()
    return any(keyword in lowered for keyword in keywords)


def find_header_row(raw: pd.DataFrame) -> Optional[int]:
    """Index of the first row containing an identifier column name."""
    for idx in range(min(len(raw), HEADER_SCAN_ROWS)):
        for value in raw.iloc[idx].tolist():
            if _matches(_cell_text(value), IDENTIFIER_KEYWORDS):
                return idx
    return None


def map_columns(headers: List[str]) -> Dict[str, int]:
    """Map header cells to identifier / breed / date column positions.

    The first matching column wins for each role; a column is used for at
    most one role, identifier first.
    """
    mapping: Dict[str, int] = {}
    for role, keywords in (
        ("identifier", IDENTIFIER_KEYWORDS),
        ("breed", BREED_KEYWORDS),
        ("date", DATE_KEYWORDS),
    ):
        for pos, header in enumerate(headers):
            if pos in mapping.values():
                continue
            if _matches(header, keywords):
                mapping[role] = pos
                break
    return mapping


def normalize_date(value) -> str:
    """Best-effort ISO date from a cell; '-' when it cannot be read."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")

    text = str(value).strip()
    if not text:
        return "-"
    digits = text.replace("-", "").replace(".", "").replace("/", "")
    if digits.isdigit() and len(digits) == 8:
        return f"{digits[:4]}-{digits[4:6]}-{digits[6:]}"

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return "-"
    return parsed.strftime("%Y-%m-%d")


def load_sheet(blob: bytes, filename: str = "") -> pd.DataFrame:
    """Read the first sheet with no header inference."""
    if filename.lower().endswith(".csv"):
        return pd.read_csv(BytesIO(blob), header=None, dtype=str, keep_default_na=False)
    return pd.read_excel(BytesIO(blob), header=None)


def records_from_dataframe(raw: pd.DataFrame) -> List[TraceabilityRecord]:
    """Extract records from a header-less frame.

    Raises:
        SpreadsheetFormatError: If no identifier column is found
    """
    header_idx = find_header_row(raw)
    if header_idx is None:
        raise SpreadsheetFormatError(
            "No identifier column found (expected a header containing "
            + ", ".join(repr(k) for k in IDENTIFIER_KEYWORDS) + ")"
        )

    headers = [_cell_text(v) for v in raw.iloc[header_idx].tolist()]
    columns = map_columns(headers)

    records = []
    for _, row in raw.iloc[header_idx + 1:].iterrows():
        values = row.tolist()
        identifier = _identifier_text(values[columns["identifier"]])
        if not identifier:
            continue

        breed = _cell_text(values[columns["breed"]]) if "breed" in columns else ""
        birth = values[columns["date"]] if "date" in columns else None

        records.append(TraceabilityRecord(
            trace_number=identifier,
            breed_label=breed or "-",
            production_or_birth_date=normalize_date(birth),
        ))

    return records


def records_from_spreadsheet(blob: bytes, filename: str = "") -> List[TraceabilityRecord]:
    """Records from an uploaded spreadsheet file."""
    return records_from_dataframe(load_sheet(blob, filename))
