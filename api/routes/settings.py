"""Settings endpoints."""

from fastapi import APIRouter, Request

from core.models.certificate import BusinessInfo
from core.storage import load_business_info, save_business_info


router = APIRouter()


@router.get("/business-info", response_model=BusinessInfo)
async def get_business_info(request: Request) -> BusinessInfo:
    """Applicant details printed on certificates."""
    return load_business_info(request.app.state.settings.business_info_path)


@router.put("/business-info", response_model=BusinessInfo)
async def put_business_info(request: Request, info: BusinessInfo) -> BusinessInfo:
    """Replace the applicant details."""
    save_business_info(info, request.app.state.settings.business_info_path)
    return info
