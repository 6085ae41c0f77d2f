"""Production log endpoints.

Kiosk catalog and saves, monthly listing and the ministry report download.
"""

from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Query, Request, Response
from pydantic import BaseModel

from production import (
    PARTS_MAP,
    PRODUCTS,
    NoProductionDataError,
    ProductionEntry,
    ProductionLog,
    ProductionValidationError,
    XLSX_MEDIA_TYPE,
    build_monthly_report,
    insert_production_log,
    list_logs_for_month,
    list_recent_logs,
    random_test_weight,
    report_filename,
    validate_production_entry,
)


router = APIRouter()


class CatalogResponse(BaseModel):
    products: List[str]
    parts: Dict[str, List[str]]


class ScaleWeightResponse(BaseModel):
    weight: Optional[float] = None
    source: str


def _db_path(request: Request):
    return request.app.state.settings.db_path


@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog() -> CatalogResponse:
    """Products and the parts each one can be cut into."""
    return CatalogResponse(products=PRODUCTS, parts=PARTS_MAP)


@router.get("/scale", response_model=ScaleWeightResponse)
async def get_scale_weight(request: Request, test: bool = False) -> ScaleWeightResponse:
    """Latest scale reading, or a simulated one in test mode."""
    if test:
        return ScaleWeightResponse(weight=random_test_weight(), source="test")

    scale = request.app.state.scale_reader
    if scale is None:
        raise HTTPException(status_code=503, detail="No scale configured (set SCALE_PORT)")
    return ScaleWeightResponse(weight=scale.latest_weight, source="scale")


@router.post("/logs", response_model=ProductionLog, status_code=201)
async def create_log(request: Request, entry: ProductionEntry) -> ProductionLog:
    """Validate and store one weighed cut."""
    try:
        log = validate_production_entry(entry)
    except ProductionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return insert_production_log(log, _db_path(request))


@router.get("/logs/recent", response_model=List[ProductionLog])
async def recent_logs(
    request: Request,
    limit: int = Query(5, ge=1, le=50),
) -> List[ProductionLog]:
    """Most recent saves, newest first."""
    return list_recent_logs(_db_path(request), limit=limit)


@router.get("/logs", response_model=List[ProductionLog])
async def month_logs(request: Request, month: str = Query(..., description="YYYY-MM")) -> List[ProductionLog]:
    """Logs produced in a month, in date order."""
    try:
        return list_logs_for_month(month, _db_path(request))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/report")
async def download_report(request: Request, month: str = Query(..., description="YYYY-MM")) -> Response:
    """Monthly ministry report as an xlsx download."""
    try:
        logs = list_logs_for_month(month, _db_path(request))
        content = build_monthly_report(logs, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoProductionDataError as e:
        raise HTTPException(status_code=404, detail=str(e))

    filename = quote(report_filename(month))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
    )
