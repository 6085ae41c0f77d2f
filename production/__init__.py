"""Production Log Module.

Records cuts weighed at the floor-scale kiosk and exports the monthly
ministry production report.

Usage:
    from production import ProductionEntry, validate_production_entry, insert_production_log

    log = validate_production_entry(ProductionEntry(
        traceability_no="002192205667", product_name="한우",
        part_name="등심", weight=1.234,
    ))
    insert_production_log(log, settings.db_path)
"""

from production.models import (
    PRODUCTS,
    PARTS_MAP,
    ReportStatus,
    ProductionLog,
    ProductionEntry,
    ProductionValidationError,
    NoProductionDataError,
    parts_for,
    validate_production_entry,
)
from production.db import (
    init_production_db,
    insert_production_log,
    list_logs_for_month,
    list_recent_logs,
    update_report_status,
    get_production_log,
    month_range,
)
from production.scale import ScaleReader, parse_scale_weight, random_test_weight
from production.report import (
    STATUS_LABELS,
    XLSX_MEDIA_TYPE,
    build_monthly_report,
    report_filename,
)

__all__ = [
    # Models
    "PRODUCTS",
    "PARTS_MAP",
    "ReportStatus",
    "ProductionLog",
    "ProductionEntry",
    "ProductionValidationError",
    "NoProductionDataError",
    "parts_for",
    "validate_production_entry",
    # Database
    "init_production_db",
    "insert_production_log",
    "list_logs_for_month",
    "list_recent_logs",
    "update_report_status",
    "get_production_log",
    "month_range",
    # Scale
    "ScaleReader",
    "parse_scale_weight",
    "random_test_weight",
    # Report
    "STATUS_LABELS",
    "XLSX_MEDIA_TYPE",
    "build_monthly_report",
    "report_filename",
]
