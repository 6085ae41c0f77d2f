"""Deduplicating Ingest Store.

Holds the canonical list of rows shown in the certificate table. Every
insertion batch goes through the same classification:

1. Letter-prefixed numbers (internal label ids) are excluded; they can never
   be resolved by the grading service and never enter the row list
2. Records whose identity key is already present (including earlier in the
   same batch) are duplicates
3. Everything else is accepted with the next synthetic row id

Classification reads the store but never writes to it; the row list is
mutated once, after the whole batch has been classified.
"""

import uuid
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from core.models.traceability import IngestedRow, TraceabilityRecord
from core.observability import log_batch_ingested, record_batch, with_correlation
from label_parser.normalize import is_label_number
from label_parser.parser import NO_IDENTIFIERS_MESSAGE


class IngestResult(BaseModel):
    """Outcome of one add_records call."""
    added_count: int = 0
    duplicate_count: int = 0
    excluded_count: int = 0
    added_rows: List[IngestedRow] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.added_count + self.duplicate_count + self.excluded_count

    def summary(self) -> str:
        """User-facing summary.

        Duplicate and excluded counts are always named when non-zero, even
        when rows were also added. A batch with no valid number at all reads
        as "nothing found", with any excluded label numbers noted after it.
        """
        if self.added_count == 0 and self.duplicate_count == 0:
            if self.excluded_count:
                return f"{NO_IDENTIFIERS_MESSAGE} ({self.excluded_count} label number(s) excluded)"
            return NO_IDENTIFIERS_MESSAGE

        parts = [f"{self.added_count} added"]
        if self.duplicate_count:
            parts.append(f"{self.duplicate_count} duplicate(s) skipped")
        if self.excluded_count:
            parts.append(f"{self.excluded_count} label number(s) excluded")
        return ", ".join(parts)


class IngestStore:
    """In-memory row store for one dashboard session.

    Example:
        store = IngestStore()
        result = store.add_records(parse_label_text(text).records)
        print(result.summary())
        selected = store.selected_records()
    """

    def __init__(self, rows: Optional[Iterable[IngestedRow]] = None):
        self._rows: List[IngestedRow] = list(rows or [])
        # Ids never go backwards, even after remove() / clear()
        self._last_id = max((row.id for row in self._rows), default=0)

    @property
    def rows(self) -> List[IngestedRow]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, row_id: int) -> Optional[IngestedRow]:
        for row in self._rows:
            if row.id == row_id:
                return row
        return None

    def classify(self, batch: Iterable[TraceabilityRecord]) -> IngestResult:
        """Classify a batch against the current rows without storing it."""
        existing_keys = {row.record.identity_key for row in self._rows}
        next_id = max(self._last_id, max((row.id for row in self._rows), default=0))

        result = IngestResult()
        for record in batch:
            if is_label_number(record.trace_number):
                result.excluded_count += 1
                continue

            key = record.identity_key
            if key in existing_keys:
                result.duplicate_count += 1
                continue

            next_id += 1
            existing_keys.add(key)
            result.added_rows.append(IngestedRow(id=next_id, record=record))
            result.added_count += 1

        return result

    def add_records(self, batch: Iterable[TraceabilityRecord]) -> IngestResult:
        """Classify a batch and append the accepted rows.

        Args:
            batch: Records from any ingestion path, in input order

        Returns:
            IngestResult with added / duplicate / excluded counts
        """
        result = self.classify(batch)
        if result.added_rows:
            self._rows.extend(result.added_rows)
            self._last_id = result.added_rows[-1].id
        return result

    def remove(self, row_id: int) -> bool:
        """Delete one row; returns False when the id is unknown."""
        before = len(self._rows)
        self._rows = [row for row in self._rows if row.id != row_id]
        return len(self._rows) != before

    def clear(self) -> int:
        """Delete every row; returns how many were removed."""
        count = len(self._rows)
        self._rows = []
        return count

    def toggle(self, row_id: int) -> Optional[IngestedRow]:
        """Flip one row's selection."""
        row = self.get(row_id)
        if row is not None:
            row.selected = not row.selected
        return row

    def toggle_all(self) -> bool:
        """Select every row, or clear the selection when all are selected.

        Returns:
            The new selection state
        """
        select = not (self._rows and all(row.selected for row in self._rows))
        for row in self._rows:
            row.selected = select
        return select

    def selected_rows(self) -> List[IngestedRow]:
        return [row for row in self._rows if row.selected]

    def selected_records(self) -> List[TraceabilityRecord]:
        return [row.record for row in self._rows if row.selected]


def ingest_batch(
    store: IngestStore,
    batch: Iterable[TraceabilityRecord],
    source: str,
    pre_excluded: int = 0,
) -> IngestResult:
    """Add a batch from one ingestion path, logging and counting it.

    Args:
        store: Target store
        batch: Records from the ingestion path
        source: Path name for logs and metrics (text, spreadsheet, image)
        pre_excluded: Label numbers already dropped by the label parser

    Returns:
        IngestResult with pre_excluded folded into excluded_count
    """
    with with_correlation(batch_id=uuid.uuid4().hex[:8], source=source):
        result = store.add_records(batch)
        if pre_excluded:
            result.excluded_count += pre_excluded

        log_batch_ingested(
            source,
            result.added_count,
            result.duplicate_count,
            result.excluded_count,
            rows=len(store),
        )
    record_batch(source, result.added_count, result.duplicate_count, result.excluded_count)
    return result
