"""Grading certificate models.

The grading API returns open, string-keyed items. Only a fixed set of fields
is ever read, so items are mapped onto fixed-shape records with every field
optional. Field aliases list the upstream names, including the alternates
some API revisions use.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from core.models.traceability import DeliveryInfo


def _first(item: Dict[str, Any], *names: str) -> Optional[str]:
    """Return the first non-blank value among the given keys."""
    for name in names:
        value = item.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


# =============================================================================
# Upstream payload
# =============================================================================

class IssueItem(BaseModel):
    """One confirmation issue for a traceability number (stage 1)."""
    issue_no: Optional[str] = None
    issue_date: Optional[str] = None
    abatt_code: Optional[str] = None
    abatt_name: Optional[str] = Field(default=None, description="Slaughterhouse / facility name")
    abatt_date: Optional[str] = Field(default=None, description="Slaughter date")
    judge_date: Optional[str] = None
    judge_kind_code: Optional[str] = None
    judge_kind_name: Optional[str] = None
    judge_sex_name: Optional[str] = None

    @classmethod
    def from_api_item(cls, item: Dict[str, Any]) -> "IssueItem":
        return cls(
            issue_no=_first(item, "issueNo"),
            issue_date=_first(item, "issueDate"),
            abatt_code=_first(item, "abattCode"),
            abatt_name=_first(item, "abattNm", "butchPlcNm"),
            abatt_date=_first(item, "abattDate", "butchYmd"),
            judge_date=_first(item, "judgeDate"),
            judge_kind_code=_first(item, "judgeKindCd"),
            judge_kind_name=_first(item, "judgeKindNm"),
            judge_sex_name=_first(item, "judgeSexNm", "sexNm"),
        )


class GradeDetail(BaseModel):
    """Carcass-level grade detail row (stage 2, access-gated)."""
    carcass_no: Optional[str] = None
    breed_name: Optional[str] = None
    sex_name: Optional[str] = None
    carcass_weight: Optional[str] = None
    quality_grade: Optional[str] = None
    marble_score: Optional[str] = None
    yield_grade: Optional[str] = None
    backfat_thickness: Optional[str] = None

    @classmethod
    def from_api_item(cls, item: Dict[str, Any]) -> "GradeDetail":
        return cls(
            carcass_no=_first(item, "carcassNo", "inspecNo"),
            breed_name=_first(item, "breedNm", "liveStockNm"),
            sex_name=_first(item, "sexNm"),
            carcass_weight=_first(item, "carcassWeight"),
            quality_grade=_first(item, "qulGradeNm", "gradeNm"),
            marble_score=_first(item, "marbleScore"),
            yield_grade=_first(item, "yieldGradeNm"),
            backfat_thickness=_first(item, "backfatThick"),
        )


class CertificateData(BaseModel):
    """Everything the grading service returned for one traceability number.

    grade_details may be empty while detail-service authorization is pending;
    grade_detail_diagnostic then explains why, and the issue-level data is
    still valid and printable.
    """
    animal_no: str = Field(..., description="12-digit traceability number")
    total_count: int = Field(default=0, description="Number of issue entries")
    issues: List[IssueItem] = Field(default_factory=list)
    grade_details: List[GradeDetail] = Field(default_factory=list)
    grade_detail_diagnostic: Optional[str] = Field(
        default=None, description="Non-fatal reason grade details are missing"
    )

    @property
    def is_partial(self) -> bool:
        """Grade detail missing while a diagnostic is present."""
        return not self.grade_details and bool(self.grade_detail_diagnostic)


# =============================================================================
# Resolution state
# =============================================================================

class LookupStatus(str, Enum):
    """Per-row lookup state."""
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class CertificateLookupResult(BaseModel):
    """Outcome of resolving one traceability number.

    Exactly one of data (success) or message (error / skipped) is meaningful
    for a settled result.
    """
    status: LookupStatus = Field(default=LookupStatus.LOADING)
    data: Optional[CertificateData] = None
    message: Optional[str] = Field(default=None, description="Error text or skip reason")

    @property
    def partial(self) -> bool:
        return self.status == LookupStatus.SUCCESS and self.data is not None and self.data.is_partial

    @property
    def is_settled(self) -> bool:
        return self.status != LookupStatus.LOADING

    @classmethod
    def loading(cls) -> "CertificateLookupResult":
        return cls(status=LookupStatus.LOADING)

    @classmethod
    def success(cls, data: CertificateData) -> "CertificateLookupResult":
        return cls(status=LookupStatus.SUCCESS, data=data)

    @classmethod
    def error(cls, message: str) -> "CertificateLookupResult":
        return cls(status=LookupStatus.ERROR, message=message)

    @classmethod
    def skipped(cls, reason: str) -> "CertificateLookupResult":
        return cls(status=LookupStatus.SKIPPED, message=reason)


# =============================================================================
# Printable documents
# =============================================================================

class BusinessInfo(BaseModel):
    """Applicant details printed on every certificate."""
    name: str = Field(default="", description="Applicant name")
    biz_no: str = Field(default="", description="Business registration number")
    biz_name: str = Field(default="", description="Business name")
    biz_type: str = Field(default="", description="Business type")
    address: str = Field(default="", description="Business address")


class CertificateDocument(BaseModel):
    """One printable grading confirmation (one per issue entry)."""
    row_index: int = Field(..., description="Position of the source row in the selection")
    animal_no: str
    issue: IssueItem
    grade_rows: List[GradeDetail] = Field(default_factory=list)
    grade_pending: bool = Field(
        default=False, description="Grade detail unavailable pending authorization"
    )
    grade_pending_notice: Optional[str] = None
    delivery: Optional[DeliveryInfo] = None
    breed_label: Optional[str] = None
    applicant: BusinessInfo = Field(default_factory=BusinessInfo)


def details_from_items(items: Iterable[Dict[str, Any]]) -> List[GradeDetail]:
    """Map raw stage-2 items onto GradeDetail records."""
    return [GradeDetail.from_api_item(item) for item in items]
