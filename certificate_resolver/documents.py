"""Printable grading confirmation documents.

One document is produced per issue entry of every successful row. The
grading service returns grade detail rows flattened across issues, so they
are attached to the first document of a row only.
"""

import re
from typing import Iterable, List

from core.models.certificate import BusinessInfo, CertificateDocument, LookupStatus


GRADE_PENDING_NOTICE = (
    "※ 소도체 등급 상세(도체번호·품종·중량·육질·육량)는 EKAPE API 권한 획득 후 자동 표시됩니다."
)

_EIGHT_DIGITS_RE = re.compile(r"^\d{8}$")


def format_korean_date(value) -> str:
    """YYYYMMDD or YYYY-MM-DD as 'YYYY년 MM월 DD일'.

    Anything else is returned stripped of hyphens, or '' when empty.
    """
    text = str(value if value is not None else "").strip().replace("-", "")
    if _EIGHT_DIGITS_RE.match(text):
        return f"{text[:4]}년 {text[4:6]}월 {text[6:]}일"
    return text


def build_certificate_documents(rows: Iterable, business_info: BusinessInfo) -> List[CertificateDocument]:
    """Documents for every successful row, in row order.

    Skipped and error rows are never printed.
    """
    documents = []
    for row in rows:
        result = row.result
        if result.status != LookupStatus.SUCCESS or result.data is None:
            continue

        data = result.data
        has_diagnostic = bool(data.grade_detail_diagnostic)
        for i, issue in enumerate(data.issues):
            grade_rows = list(data.grade_details) if i == 0 else []
            pending = has_diagnostic and not grade_rows
            documents.append(CertificateDocument(
                row_index=row.index,
                animal_no=data.animal_no,
                issue=issue,
                grade_rows=grade_rows,
                grade_pending=pending,
                grade_pending_notice=GRADE_PENDING_NOTICE if pending else None,
                delivery=row.record.delivery,
                breed_label=row.record.breed_label,
                applicant=business_info,
            ))

    return documents
