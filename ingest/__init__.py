"""Ingest - deduplicating row store and ingestion paths.

Every ingestion path produces TraceabilityRecords that go through
IngestStore.add_records:
- Scanner / label text (label_parser)
- Typed, scanned or pasted identifiers
- Spreadsheets (header-detected by column name)
- Barcode images

Usage:
    from ingest import IngestStore, records_from_spreadsheet

    store = IngestStore()
    result = store.add_records(records_from_spreadsheet(blob, "list.xlsx"))
    print(result.summary())
"""

from ingest.store import IngestStore, IngestResult, ingest_batch
from ingest.text_input import (
    records_from_scanner_text,
    records_from_typed_input,
    parse_typed_input,
    extract_identifiers,
)
from ingest.spreadsheet import (
    SpreadsheetFormatError,
    records_from_spreadsheet,
    records_from_dataframe,
)
from ingest.image import BarcodeDecodeError, parse_image, records_from_image

__all__ = [
    # Store
    "IngestStore",
    "IngestResult",
    "ingest_batch",
    # Text
    "records_from_scanner_text",
    "records_from_typed_input",
    "parse_typed_input",
    "extract_identifiers",
    # Spreadsheet
    "SpreadsheetFormatError",
    "records_from_spreadsheet",
    "records_from_dataframe",
    # Image
    "BarcodeDecodeError",
    "parse_image",
    "records_from_image",
]
