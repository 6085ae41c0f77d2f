"""Record endpoints.

The row list shown in the certificate table: ingestion from text, files and
images, removal and selection.
"""

from pathlib import PurePath
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from core.models.traceability import IngestedRow
from ingest import (
    BarcodeDecodeError,
    IngestResult,
    IngestStore,
    SpreadsheetFormatError,
    ingest_batch,
    parse_image,
    parse_typed_input,
    records_from_spreadsheet,
)


router = APIRouter()


SPREADSHEET_EXTENSIONS = (".xlsx", ".xls", ".csv")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp")
TEXT_EXTENSIONS = (".txt",)


class TextIngestRequest(BaseModel):
    """Scanner output, a label file's contents, or typed identifiers."""
    text: str = Field(..., description="Raw text; label format or one identifier per line")


class IngestResponse(BaseModel):
    """Outcome of one ingestion batch."""
    added_count: int
    duplicate_count: int
    excluded_count: int
    skipped_lines: int = 0
    message: str
    added_rows: List[IngestedRow]


class RecordListResponse(BaseModel):
    items: List[IngestedRow]
    total: int
    selected: int


class ToggleAllResponse(BaseModel):
    selected: bool
    total: int


def _store(request: Request) -> IngestStore:
    return request.app.state.store


def _response(result: IngestResult, skipped_lines: int = 0) -> IngestResponse:
    return IngestResponse(
        added_count=result.added_count,
        duplicate_count=result.duplicate_count,
        excluded_count=result.excluded_count,
        skipped_lines=skipped_lines,
        message=result.summary(),
        added_rows=result.added_rows,
    )


def _ingest_text(store: IngestStore, text: str, source: str) -> IngestResponse:
    parsed = parse_typed_input(text)
    result = ingest_batch(store, parsed.records, source, pre_excluded=parsed.excluded_count)
    return _response(result, parsed.skipped_lines)


@router.get("", response_model=RecordListResponse)
async def list_records(request: Request) -> RecordListResponse:
    """List all rows in insertion order."""
    store = _store(request)
    rows = store.rows
    return RecordListResponse(
        items=rows,
        total=len(rows),
        selected=sum(1 for row in rows if row.selected),
    )


@router.post("/text", response_model=IngestResponse)
async def ingest_text(request: Request, body: TextIngestRequest) -> IngestResponse:
    """Ingest scanner text, a pasted label file or typed identifiers."""
    return _ingest_text(_store(request), body.text, "text")


@router.post("/upload", response_model=IngestResponse)
async def upload_records(request: Request, file: UploadFile = File(...)) -> IngestResponse:
    """Ingest an uploaded spreadsheet, barcode image or label text file."""
    store = _store(request)
    filename = file.filename or ""
    extension = PurePath(filename).suffix.lower()
    blob = await file.read()

    if extension in SPREADSHEET_EXTENSIONS:
        try:
            records = records_from_spreadsheet(blob, filename)
        except SpreadsheetFormatError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Could not read spreadsheet: {e}")
        return _response(ingest_batch(store, records, "spreadsheet"))

    if extension in IMAGE_EXTENSIONS:
        try:
            parsed = parse_image(blob)
        except BarcodeDecodeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _response(ingest_batch(store, parsed.records, "image", pre_excluded=parsed.excluded_count))

    if extension in TEXT_EXTENSIONS:
        text = blob.decode("utf-8-sig", errors="replace")
        return _ingest_text(store, text, "file")

    raise HTTPException(
        status_code=415,
        detail=f"Unsupported file type: {extension or filename!r}",
    )


@router.delete("/{row_id}")
async def delete_record(request: Request, row_id: int) -> dict:
    """Remove one row."""
    if not _store(request).remove(row_id):
        raise HTTPException(status_code=404, detail=f"Row {row_id} not found")
    return {"deleted": row_id}


@router.delete("")
async def clear_records(request: Request) -> dict:
    """Remove every row."""
    return {"deleted": _store(request).clear()}


@router.post("/toggle-all", response_model=ToggleAllResponse)
async def toggle_all(request: Request) -> ToggleAllResponse:
    """Select every row, or clear the selection when all are selected."""
    store = _store(request)
    return ToggleAllResponse(selected=store.toggle_all(), total=len(store))


@router.post("/{row_id}/toggle", response_model=IngestedRow)
async def toggle_record(request: Request, row_id: int) -> IngestedRow:
    """Flip one row's selection."""
    row = _store(request).toggle(row_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Row {row_id} not found")
    return row


def selected_or_requested(store: IngestStore, row_ids: Optional[List[int]]) -> List[IngestedRow]:
    """Rows for a resolution run: the given ids in order, or the current selection."""
    if row_ids is None:
        return store.selected_rows()

    rows = []
    for row_id in row_ids:
        row = store.get(row_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"Row {row_id} not found")
        rows.append(row)
    return rows
