"""Certificate resolution endpoints.

Starts resolution runs over selected rows, reports their progress and
returns printable documents once every lookup has settled.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from core.models.certificate import CertificateData, CertificateDocument, LookupStatus
from core.models.traceability import TraceabilityRecord
from core.storage import load_business_info
from certificate_resolver import ResolutionNotCompleteError, ResolutionRegistry, ResolutionRun
from api.routes.records import selected_or_requested


router = APIRouter()


class StartRunRequest(BaseModel):
    """Rows to resolve; the current selection when row_ids is omitted."""
    row_ids: Optional[List[int]] = Field(None, description="Row ids in display order")


class RunRowResponse(BaseModel):
    index: int
    record: TraceabilityRecord
    key: Optional[str] = None
    status: LookupStatus
    partial: bool = False
    message: Optional[str] = None
    data: Optional[CertificateData] = None


class RunResponse(BaseModel):
    """Progress and per-row state of a resolution run."""
    run_id: str
    loaded: int
    total: int
    rows_settled: int
    rows_total: int
    is_complete: bool
    can_commit: bool
    created_at: datetime
    completed_at: Optional[datetime] = None
    rows: List[RunRowResponse]


class CommitResponse(BaseModel):
    run_id: str
    documents: List[CertificateDocument]
    printed_rows: int
    skipped_rows: int
    error_rows: int


def _registry(request: Request) -> ResolutionRegistry:
    return request.app.state.registry


def _get_run(request: Request, run_id: str) -> ResolutionRun:
    run = _registry(request).get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Resolution run {run_id} not found")
    return run


def _run_response(run: ResolutionRun) -> RunResponse:
    return RunResponse(
        run_id=run.run_id,
        loaded=run.loaded,
        total=run.total,
        rows_settled=run.rows_settled,
        rows_total=run.rows_total,
        is_complete=run.is_complete,
        can_commit=run.can_commit,
        created_at=run.created_at,
        completed_at=run.completed_at,
        rows=[
            RunRowResponse(
                index=row.index,
                record=row.record,
                key=row.key,
                status=row.result.status,
                partial=row.result.partial,
                message=row.result.message,
                data=row.result.data,
            )
            for row in run.rows
        ],
    )


@router.post("/runs", response_model=RunResponse, status_code=202)
async def start_run(request: Request, body: Optional[StartRunRequest] = None) -> RunResponse:
    """Start resolving the selected rows in the background."""
    rows = selected_or_requested(request.app.state.store, body.row_ids if body else None)
    if not rows:
        raise HTTPException(status_code=400, detail="No rows selected")

    run = _registry(request).start([row.record for row in rows])
    return _run_response(run)


@router.get("/runs/{run_id}", response_model=RunResponse)
async def get_run(request: Request, run_id: str) -> RunResponse:
    """Progress of a run; rows carry their results once it completes."""
    return _run_response(_get_run(request, run_id))


@router.post("/runs/{run_id}/commit", response_model=CommitResponse)
async def commit_run(request: Request, run_id: str) -> CommitResponse:
    """Printable documents for the run's successful rows.

    Refused with 409 while any lookup is still loading.
    """
    run = _get_run(request, run_id)
    business_info = load_business_info(request.app.state.settings.business_info_path)

    try:
        documents = run.commit(business_info)
    except ResolutionNotCompleteError as e:
        raise HTTPException(status_code=409, detail=str(e))

    statuses = [row.result.status for row in run.rows]
    return CommitResponse(
        run_id=run.run_id,
        documents=documents,
        printed_rows=statuses.count(LookupStatus.SUCCESS),
        skipped_rows=statuses.count(LookupStatus.SKIPPED),
        error_rows=statuses.count(LookupStatus.ERROR),
    )


@router.delete("/runs/{run_id}")
async def discard_run(request: Request, run_id: str) -> dict:
    """Forget a run; lookups still in flight finish and are dropped."""
    if not _registry(request).discard(run_id):
        raise HTTPException(status_code=404, detail=f"Resolution run {run_id} not found")
    return {"deleted": run_id}
