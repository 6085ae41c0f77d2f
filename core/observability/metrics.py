"""
Metrics Collection

Collects and exposes in-memory metrics for:
- Ingestion batches (rows added, duplicates, exclusions) per source
- Certificate lookups (started, succeeded, failed, skipped)
- Resolution runs (started, completed)
- Lookup latency (average, p95)
"""

import statistics
from collections import defaultdict, deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, List, Optional


MAX_TIMING_SAMPLES = 1000


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class IngestMetrics:
    """Metrics for ingestion batches."""
    batches: int = 0
    added: int = 0
    duplicates: int = 0
    excluded: int = 0

    by_source: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: defaultdict(lambda: {"batches": 0, "added": 0, "duplicates": 0, "excluded": 0})
    )


@dataclass
class LookupMetrics:
    """Metrics for certificate lookups and resolution runs."""
    started: int = 0
    succeeded: int = 0
    partial: int = 0
    failed: int = 0
    skipped: int = 0

    runs_started: int = 0
    runs_completed: int = 0


@dataclass
class TimingMetrics:
    """Latency samples, overall and per stage, newest MAX_TIMING_SAMPLES kept."""
    samples: Deque[float] = field(default_factory=lambda: deque(maxlen=MAX_TIMING_SAMPLES))
    by_stage: Dict[str, Deque[float]] = field(default_factory=dict)

    def add_sample(self, duration_ms: float, stage: str = None):
        self.samples.append(duration_ms)
        if stage:
            self.by_stage.setdefault(stage, deque(maxlen=MAX_TIMING_SAMPLES)).append(duration_ms)

    def _select(self, stage: Optional[str]) -> List[float]:
        return list(self.by_stage.get(stage, ())) if stage else list(self.samples)

    def get_average(self, stage: str = None) -> float:
        samples = self._select(stage)
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Nearest-rank 95th percentile; 0.0 with no samples."""
        samples = sorted(self._select(stage))
        if not samples:
            return 0.0
        return samples[min(int(len(samples) * 0.95), len(samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_batch("spreadsheet", added=10, duplicates=2, excluded=1)
        metrics.record_lookup_succeeded(duration_ms=1500)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.ingest = IngestMetrics()
        self.lookups = LookupMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Ingestion
    # =========================================================================

    def record_batch(self, source: str, added: int, duplicates: int, excluded: int):
        """Record the outcome of one ingestion batch."""
        with self._lock:
            self.ingest.batches += 1
            self.ingest.added += added
            self.ingest.duplicates += duplicates
            self.ingest.excluded += excluded

            by_source = self.ingest.by_source[source]
            by_source["batches"] += 1
            by_source["added"] += added
            by_source["duplicates"] += duplicates
            by_source["excluded"] += excluded

    # =========================================================================
    # Lookups
    # =========================================================================

    def record_run_started(self, skipped: int = 0):
        """Record a resolution run start and its format-rejected rows."""
        with self._lock:
            self.lookups.runs_started += 1
            self.lookups.skipped += skipped

    def record_run_completed(self, duration_ms: float = None):
        with self._lock:
            self.lookups.runs_completed += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "resolution_run")

    def record_lookup_started(self):
        with self._lock:
            self.lookups.started += 1

    def record_lookup_succeeded(self, duration_ms: float = None, partial: bool = False):
        with self._lock:
            self.lookups.succeeded += 1
            if partial:
                self.lookups.partial += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "lookup")

    def record_lookup_failed(self, duration_ms: float = None):
        with self._lock:
            self.lookups.failed += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "lookup")

    # =========================================================================
    # Timing
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "ingest": {
                    "batches": self.ingest.batches,
                    "added": self.ingest.added,
                    "duplicates": self.ingest.duplicates,
                    "excluded": self.ingest.excluded,
                    "by_source": {k: dict(v) for k, v in self.ingest.by_source.items()},
                },
                "lookups": {
                    "started": self.lookups.started,
                    "succeeded": self.lookups.succeeded,
                    "partial": self.lookups.partial,
                    "failed": self.lookups.failed,
                    "skipped": self.lookups.skipped,
                    "runs_started": self.lookups.runs_started,
                    "runs_completed": self.lookups.runs_completed,
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_batch(source: str, added: int, duplicates: int, excluded: int):
    """Record the outcome of one ingestion batch."""
    get_metrics().record_batch(source, added, duplicates, excluded)


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
