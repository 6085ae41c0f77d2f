"""Certificate Resolution Engine.

Resolves grading certificates for a selection of rows with exactly one
lookup per distinct traceability number.

Run lifecycle:
1. Rows whose normalized number is not 12 digits are skipped immediately and
   never reach the lookup service
2. The remaining numbers are de-duplicated into the distinct key set
3. One lookup per key is started concurrently; each lands in its own slot of
   the run's result map, failures included
4. Once every key has settled, a single pass copies each key's result onto
   every row that carries it

Rows sharing a number therefore always show the identical result object.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from core.errors import MeatDeskError
from core.models.certificate import (
    BusinessInfo,
    CertificateData,
    CertificateDocument,
    CertificateLookupResult,
    LookupStatus,
)
from core.models.traceability import TraceabilityRecord
from core.observability import get_logger, get_metrics, log_lookup_outcome, with_correlation
from label_parser.normalize import is_valid_trace_number, normalize_trace_number
from certificate_resolver.documents import build_certificate_documents

logger = get_logger(__name__)


INVALID_FORMAT_REASON = "not a valid 12-digit number"
NETWORK_ERROR_MESSAGE = "Network error"


class CertificateLookup(Protocol):
    """Protocol for the certificate lookup service.

    The grading connector implements this; tests pass in fakes.
    """

    async def fetch_certificate(self, trace_number: str) -> CertificateData:
        """Resolve one normalized 12-digit number.

        Raises:
            Exception: Any failure; its message is shown on the row
        """
        ...


class ResolutionNotCompleteError(MeatDeskError):
    """Commit attempted while lookups are still in flight."""
    pass


@dataclass
class CertificateRow:
    """One selected record and its lookup state."""
    index: int
    record: TraceabilityRecord
    key: Optional[str]
    result: CertificateLookupResult = field(default_factory=CertificateLookupResult.loading)


class ResolutionRun:
    """One resolution invocation with its own result map.

    Example:
        run = ResolutionRun(store.selected_records(), client)
        await run.run()
        if run.can_commit:
            documents = run.commit(business_info)
    """

    def __init__(
        self,
        records: Iterable[TraceabilityRecord],
        lookup: CertificateLookup,
        run_id: Optional[str] = None,
        on_progress: Optional[Callable[["ResolutionRun"], None]] = None,
    ):
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.lookup = lookup
        self.on_progress = on_progress
        self.created_at = datetime.now(timezone.utc)
        self.completed_at: Optional[datetime] = None

        self.rows: List[CertificateRow] = []
        for index, record in enumerate(records):
            normalized = normalize_trace_number(record.trace_number)
            if is_valid_trace_number(normalized):
                self.rows.append(CertificateRow(index=index, record=record, key=normalized))
            else:
                self.rows.append(CertificateRow(
                    index=index,
                    record=record,
                    key=None,
                    result=CertificateLookupResult.skipped(INVALID_FORMAT_REASON),
                ))

        self.distinct_keys: List[str] = list(dict.fromkeys(
            row.key for row in self.rows if row.key is not None
        ))
        self.results: Dict[str, CertificateLookupResult] = {}
        self._task: Optional[asyncio.Future] = None

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    @property
    def loaded(self) -> int:
        """Distinct keys that have settled."""
        return len(self.results)

    @property
    def total(self) -> int:
        """Number of distinct valid keys."""
        return len(self.distinct_keys)

    @property
    def rows_total(self) -> int:
        return len(self.rows)

    @property
    def rows_settled(self) -> int:
        """Rows that are skipped or whose key has settled."""
        return sum(
            1 for row in self.rows
            if row.key is None or row.key in self.results
        )

    @property
    def is_complete(self) -> bool:
        """Every key has settled and its result has been copied onto the rows."""
        return self.completed_at is not None or not self.distinct_keys

    @property
    def can_commit(self) -> bool:
        return self.is_complete

    @property
    def skipped_count(self) -> int:
        return sum(1 for row in self.rows if row.key is None)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _resolve(self, key: str) -> None:
        """Fetch one key and store its outcome; never raises."""
        metrics = get_metrics()
        metrics.record_lookup_started()
        start = time.time()

        with with_correlation(trace_number=key):
            try:
                data = await self.lookup.fetch_certificate(key)
                result = CertificateLookupResult.success(data)
            except Exception as e:
                result = CertificateLookupResult.error(str(e) or NETWORK_ERROR_MESSAGE)

            duration_ms = (time.time() - start) * 1000
            self.results[key] = result

            if result.status == LookupStatus.SUCCESS:
                metrics.record_lookup_succeeded(duration_ms, partial=result.partial)
                log_lookup_outcome(key, "partial" if result.partial else "success", duration_ms)
            else:
                metrics.record_lookup_failed(duration_ms)
                log_lookup_outcome(key, "error", duration_ms, message=result.message)

        if self.on_progress is not None:
            self.on_progress(self)

    async def _run(self) -> List[CertificateRow]:
        metrics = get_metrics()
        metrics.record_run_started(skipped=self.skipped_count)
        start = time.time()

        with with_correlation(run_id=self.run_id, stage="resolve"):
            logger.info(
                f"Resolving {self.total} distinct number(s) for {self.rows_total} row(s)",
                extra_fields={"skipped": self.skipped_count},
            )
            await asyncio.gather(*(self._resolve(key) for key in self.distinct_keys))
            self._project()
            self.completed_at = datetime.now(timezone.utc)

            duration_ms = (time.time() - start) * 1000
            metrics.record_run_completed(duration_ms)
            metrics.record_processing_time("resolve", duration_ms)
            logger.info(
                f"Resolution complete: {self.loaded}/{self.total} number(s)",
                extra_fields={"duration_ms": round(duration_ms, 1)},
            )

        return self.rows

    async def run(self) -> List[CertificateRow]:
        """Resolve every distinct key and project the results onto rows.

        A second call joins the first instead of fetching again.
        """
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return await asyncio.shield(self._task)

    def _project(self) -> None:
        """Copy settled results onto rows.

        A row whose key has no result keeps its current state.
        """
        for row in self.rows:
            if row.key is None:
                continue
            result = self.results.get(row.key)
            if result is not None:
                row.result = result

    def commit(self, business_info: Optional[BusinessInfo] = None) -> List[CertificateDocument]:
        """Build printable documents for the successful rows.

        Raises:
            ResolutionNotCompleteError: If any distinct key is still loading
        """
        if not self.can_commit:
            raise ResolutionNotCompleteError(
                f"Resolution {self.run_id} still loading ({self.loaded}/{self.total})"
            )
        self._project()
        return build_certificate_documents(self.rows, business_info or BusinessInfo())


class ResolutionRegistry:
    """Keeps resolution runs by id for the HTTP surface.

    Runs are started as background tasks. A task is dropped as soon as it
    finishes; finished runs stay readable (and committable) until more than
    max_finished_runs have piled up, then the oldest are evicted. Discarding
    a run does not cancel its in-flight lookups; their results are dropped
    with the run.
    """

    def __init__(self, lookup: CertificateLookup, max_finished_runs: int = 20):
        self.lookup = lookup
        self.max_finished_runs = max_finished_runs
        self._runs: Dict[str, ResolutionRun] = {}
        self._tasks: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._runs)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def create(self, records: Iterable[TraceabilityRecord]) -> ResolutionRun:
        self._evict_finished()
        run = ResolutionRun(records, self.lookup)
        self._runs[run.run_id] = run
        return run

    def start(self, records: Iterable[TraceabilityRecord]) -> ResolutionRun:
        """Create a run and schedule it on the running event loop."""
        run = self.create(records)
        task = asyncio.ensure_future(run.run())
        self._tasks[run.run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run.run_id, None))
        return run

    def get(self, run_id: str) -> Optional[ResolutionRun]:
        return self._runs.get(run_id)

    def discard(self, run_id: str) -> bool:
        self._tasks.pop(run_id, None)
        return self._runs.pop(run_id, None) is not None

    async def wait(self, run_id: str) -> Optional[ResolutionRun]:
        """Wait for a started run to finish."""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.shield(task)
        return self._runs.get(run_id)

    def _evict_finished(self) -> None:
        finished = sorted(
            (run for run in self._runs.values() if run.completed_at is not None),
            key=lambda run: run.completed_at,
        )
        excess = len(finished) - self.max_finished_runs
        for run in finished[:max(excess, 0)]:
            del self._runs[run.run_id]
            logger.debug(f"Evicted finished run {run.run_id}")
