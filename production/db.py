"""Production Log Database Operations.

This module handles all database operations for the production log:
- Schema initialization
- Inserting weighed entries from the kiosk
- Monthly and recent queries for reporting
- Report status updates
"""

import re
import sqlite3
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Tuple

from production.models import ProductionLog, ReportStatus


MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def init_production_db(db_path: Path) -> None:
    """Initialize the production_logs table and its indexes.

    Args:
        db_path: Path to SQLite database file
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS production_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                production_date TEXT NOT NULL,
                traceability_no TEXT NOT NULL,
                product_name TEXT NOT NULL,
                part_name TEXT NOT NULL,
                production_weight TEXT NOT NULL,
                report_status TEXT NOT NULL DEFAULT 'PENDING',
                note TEXT DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # Monthly reports filter by date; the kiosk looks up by number
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_production_logs_date
            ON production_logs(production_date)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_production_logs_traceability
            ON production_logs(traceability_no)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_production_logs_status
            ON production_logs(report_status)
        """)

        conn.commit()
    finally:
        conn.close()


def _row_to_log(row: sqlite3.Row) -> ProductionLog:
    return ProductionLog(
        id=row["id"],
        production_date=date.fromisoformat(row["production_date"]),
        traceability_no=row["traceability_no"],
        product_name=row["product_name"],
        part_name=row["part_name"],
        production_weight=Decimal(row["production_weight"]),
        report_status=ReportStatus(row["report_status"]),
        note=row["note"] or "",
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def insert_production_log(log: ProductionLog, db_path: Path) -> ProductionLog:
    """Store a validated log.

    Returns:
        ProductionLog with id and created_at populated
    """
    now = datetime.now(timezone.utc)
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO production_logs
            (production_date, traceability_no, product_name, part_name,
             production_weight, report_status, note, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            log.production_date.isoformat(),
            log.traceability_no,
            log.product_name,
            log.part_name,
            str(log.production_weight),
            log.report_status.value,
            log.note,
            now.isoformat(),
            now.isoformat(),
        ))
        conn.commit()
        return log.model_copy(update={"id": cursor.lastrowid, "created_at": now})
    finally:
        conn.close()


def month_range(month: str) -> Tuple[str, str]:
    """Half-open [start, end) ISO date range for a YYYY-MM month.

    Raises:
        ValueError: If month is not YYYY-MM with a month of 01-12
    """
    if not MONTH_RE.match(month or ""):
        raise ValueError(f"month must be YYYY-MM, got {month!r}")
    year, mon = (int(part) for part in month.split("-"))
    if not 1 <= mon <= 12:
        raise ValueError(f"month must be YYYY-MM, got {month!r}")

    start = date(year, mon, 1)
    end = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    return start.isoformat(), end.isoformat()


def list_logs_for_month(month: str, db_path: Path) -> List[ProductionLog]:
    """All logs produced in a month, ordered by date then id."""
    start, end = month_range(month)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM production_logs
            WHERE production_date >= ? AND production_date < ?
            ORDER BY production_date ASC, id ASC
        """, (start, end))
        return [_row_to_log(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def list_recent_logs(db_path: Path, limit: int = 5) -> List[ProductionLog]:
    """Most recently saved logs, newest first."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM production_logs
            ORDER BY id DESC
            LIMIT ?
        """, (limit,))
        return [_row_to_log(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def update_report_status(log_id: int, status: ReportStatus, db_path: Path) -> bool:
    """Set a log's report status; returns False when the id is unknown."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            UPDATE production_logs
            SET report_status = ?, updated_at = ?
            WHERE id = ?
        """, (ReportStatus(status).value, datetime.now(timezone.utc).isoformat(), log_id))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def get_production_log(log_id: int, db_path: Path) -> Optional[ProductionLog]:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM production_logs WHERE id = ?", (log_id,))
        row = cursor.fetchone()
        return _row_to_log(row) if row else None
    finally:
        conn.close()
