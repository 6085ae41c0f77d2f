"""Production Log Data Models.

This module defines the models for the floor-scale production log:
- Product / part catalog used by the kiosk
- ProductionLog: One weighed cut, later reported to the ministry
- Validation of kiosk entries before they are stored
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.errors import MeatDeskError


PRODUCTS: List[str] = ["한우", "돼지", "닭", "오리"]

PARTS_MAP: Dict[str, List[str]] = {
    "한우": ["등심", "안심", "채끝", "목심", "앞다리", "갈비", "사태", "양지"],
    "돼지": ["삼겹살", "목살", "앞다리", "뒷다리", "갈비", "안심", "등심"],
    "닭": ["통닭", "가슴살", "다리", "날개", "안심"],
    "오리": ["통오리", "가슴살", "다리", "훈제용"],
}

WEIGHT_QUANT = Decimal("0.01")


class ProductionValidationError(MeatDeskError):
    """A kiosk entry is missing or inconsistent."""
    pass


class NoProductionDataError(MeatDeskError):
    """No production logs exist for the requested month."""
    def __init__(self, month: str):
        super().__init__(f"No production data for {month}")
        self.month = month


class ReportStatus(str, Enum):
    """Ministry reporting state of a log."""
    PENDING = "PENDING"
    REPORTED = "REPORTED"
    REJECTED = "REJECTED"


class ProductionLog(BaseModel):
    """One weighed production entry.

    Attributes:
        production_date: Day the cut was weighed
        traceability_no: Traceability number as scanned
        product_name: Product from the catalog (한우, 돼지, ...)
        part_name: Part belonging to the product
        production_weight: Weight in kg, two decimals
        report_status: Ministry reporting state
    """
    id: Optional[int] = None
    production_date: date
    traceability_no: str = Field(..., min_length=1, max_length=15)
    product_name: str
    part_name: str
    production_weight: Decimal = Field(..., gt=0, description="Weight in kg")
    report_status: ReportStatus = ReportStatus.PENDING
    note: str = ""
    created_at: Optional[datetime] = None

    @field_validator("production_weight")
    @classmethod
    def _quantize_weight(cls, value: Decimal) -> Decimal:
        return value.quantize(WEIGHT_QUANT, rounding=ROUND_HALF_UP)


class ProductionEntry(BaseModel):
    """Kiosk save request before validation."""
    traceability_no: str = ""
    product_name: str = ""
    part_name: str = ""
    weight: float = 0.0
    production_date: Optional[date] = None
    note: str = ""


def parts_for(product_name: str) -> List[str]:
    return list(PARTS_MAP.get(product_name, []))


def validate_production_entry(entry: ProductionEntry, today: Optional[date] = None) -> ProductionLog:
    """Check a kiosk entry and turn it into a pending ProductionLog.

    Raises:
        ProductionValidationError: With the first problem found
    """
    trace_no = entry.traceability_no.strip()
    if not trace_no:
        raise ProductionValidationError("Enter a traceability number")
    if len(trace_no) > 15:
        raise ProductionValidationError("Traceability number is too long (max 15 characters)")
    if not entry.product_name:
        raise ProductionValidationError("Select a product")
    if entry.product_name not in PARTS_MAP:
        raise ProductionValidationError(f"Unknown product: {entry.product_name}")
    if not entry.part_name:
        raise ProductionValidationError("Select a part")
    if entry.part_name not in PARTS_MAP[entry.product_name]:
        raise ProductionValidationError(
            f"{entry.part_name} is not a part of {entry.product_name}"
        )
    if entry.weight <= 0:
        raise ProductionValidationError("Check the weight")

    weight = Decimal(str(entry.weight)).quantize(WEIGHT_QUANT, rounding=ROUND_HALF_UP)
    if weight <= 0:
        raise ProductionValidationError("Check the weight")

    return ProductionLog(
        production_date=entry.production_date or today or date.today(),
        traceability_no=trace_no,
        product_name=entry.product_name,
        part_name=entry.part_name,
        production_weight=weight,
        note=entry.note,
    )
