"""Monthly ministry production report (xlsx).

One sheet, one row per production log in date order, with the reporting
status shown as its Korean label.
"""

from io import BytesIO
from typing import List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from production.db import month_range
from production.models import NoProductionDataError, ProductionLog, ReportStatus


SHEET_TITLE = "생산실적"
WORKBOOK_CREATOR = "육가공 HACCP 시스템"

STATUS_LABELS = {
    ReportStatus.PENDING: "미보고",
    ReportStatus.REPORTED: "보고완료",
    ReportStatus.REJECTED: "반려",
}

# (header, column width)
COLUMNS = [
    ("연번", 8),
    ("생산일자", 14),
    ("이력번호", 18),
    ("품목명", 12),
    ("부위명", 12),
    ("생산중량(kg)", 14),
    ("보고상태", 12),
    ("비고", 24),
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFD9E1F2")
THIN = Side(style="thin")
DATA_BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)
HEADER_BORDER = Border(top=THIN, left=THIN, bottom=Side(style="medium"), right=THIN)
CENTER = Alignment(horizontal="center", vertical="center")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def report_filename(month: str) -> str:
    """'농림부_보고_YYYYMM.xlsx' for a YYYY-MM month."""
    month_range(month)
    return f"농림부_보고_{month.replace('-', '')}.xlsx"


def report_rows(logs: Sequence[ProductionLog]) -> List[list]:
    """Cell values for each data row."""
    return [
        [
            seq,
            log.production_date.isoformat(),
            log.traceability_no,
            log.product_name,
            log.part_name,
            float(log.production_weight),
            STATUS_LABELS.get(log.report_status, log.report_status.value),
            log.note or "",
        ]
        for seq, log in enumerate(logs, start=1)
    ]


def build_monthly_report(logs: Sequence[ProductionLog], month: str) -> bytes:
    """Render a month's logs as an xlsx workbook.

    Raises:
        ValueError: If month is not YYYY-MM
        NoProductionDataError: If there are no logs
    """
    month_range(month)
    if not logs:
        raise NoProductionDataError(month)

    workbook = Workbook()
    workbook.properties.creator = WORKBOOK_CREATOR

    sheet = workbook.active
    sheet.title = SHEET_TITLE

    sheet.append([header for header, _ in COLUMNS])
    for idx, (_, width) in enumerate(COLUMNS, start=1):
        sheet.column_dimensions[sheet.cell(row=1, column=idx).column_letter].width = width

    for cell in sheet[1]:
        cell.font = Font(bold=True, size=11)
        cell.alignment = CENTER
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER
    sheet.row_dimensions[1].height = 24

    for values in report_rows(logs):
        sheet.append(values)

    for row in sheet.iter_rows(min_row=2, max_row=len(logs) + 1):
        for cell in row:
            cell.alignment = CENTER
            cell.border = DATA_BORDER

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
