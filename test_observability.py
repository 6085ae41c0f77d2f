"""
Observability Validation Test

This test validates the observability stack:
1. Metrics collection works (ingestion batches, lookups, timings)
2. Structured logging with correlation IDs works
3. A resolution run leaves its lookups in the metrics summary
"""

import asyncio
import json
import logging
from datetime import datetime

import pytest


def test_observability_imports():
    """Verify all observability modules import correctly."""
    from core.observability import (
        MetricsCollector, get_metrics,
        record_batch, record_processing_time,
        get_logger, configure_logging, CorrelationContext, with_correlation,
        log_batch_ingested, log_lookup_outcome,
    )
    assert MetricsCollector is not None
    assert get_metrics is not None
    assert CorrelationContext is not None


class TestMetricsCollector:
    """Test the metrics collection system."""

    def test_singleton_instance(self):
        """MetricsCollector returns same instance."""
        from core.observability.metrics import MetricsCollector
        m1 = MetricsCollector.instance()
        m2 = MetricsCollector.instance()
        assert m1 is m2

    def test_batch_metrics_tracking(self):
        """Track ingestion batch counts per source."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        baseline = mc.get_summary()
        batches_before = baseline["ingest"]["batches"]
        added_before = baseline["ingest"]["added"]

        source = f"test_source_{datetime.now().timestamp()}"
        mc.record_batch(source, added=3, duplicates=1, excluded=2)
        mc.record_batch(source, added=1, duplicates=0, excluded=0)

        summary = mc.get_summary()
        assert summary["ingest"]["batches"] == batches_before + 2
        assert summary["ingest"]["added"] == added_before + 4
        assert summary["ingest"]["by_source"][source] == {
            "batches": 2, "added": 4, "duplicates": 1, "excluded": 2,
        }

    def test_lookup_metrics_tracking(self):
        """Track lookup started/succeeded/failed/partial counts."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        baseline = mc.get_summary()["lookups"]

        mc.record_run_started(skipped=1)
        mc.record_lookup_started()
        mc.record_lookup_started()
        mc.record_lookup_succeeded(duration_ms=120, partial=True)
        mc.record_lookup_failed(duration_ms=80)
        mc.record_run_completed(duration_ms=130)

        lookups = mc.get_summary()["lookups"]
        assert lookups["started"] == baseline["started"] + 2
        assert lookups["succeeded"] == baseline["succeeded"] + 1
        assert lookups["partial"] == baseline["partial"] + 1
        assert lookups["failed"] == baseline["failed"] + 1
        assert lookups["skipped"] == baseline["skipped"] + 1
        assert lookups["runs_completed"] == baseline["runs_completed"] + 1

    def test_timing_percentile_calculation(self):
        """Calculate p95 timing correctly."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        # Add 100 samples: 1-100ms to a unique stage
        test_stage = f"test_stage_{datetime.now().timestamp()}"
        for i in range(1, 101):
            mc.record_processing_time(test_stage, i)

        stats = mc.get_timing_stats(test_stage)

        # Average should be ~50.5
        assert 49 <= stats["average_ms"] <= 52
        # P95 should be ~95
        assert 93 <= stats["p95_ms"] <= 97
        assert stats["sample_count"] == 100


class TestCorrelatedLogging:
    """Test structured logging with correlation IDs."""

    def test_correlation_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            run_id="run-001",
            batch_id="batch-7",
            trace_number="002192205667",
            source="spreadsheet",
            stage="resolve",
        )

        assert ctx.run_id == "run-001"
        assert ctx.trace_number == "002192205667"
        assert ctx.to_dict()["source"] == "spreadsheet"

    def test_context_var_isolation(self):
        """with_correlation sets and then restores the context."""
        from core.observability.logging import get_correlation_context, with_correlation

        ctx = get_correlation_context()
        assert ctx.run_id is None

        with with_correlation(run_id="run-TEST"):
            inner_ctx = get_correlation_context()
            assert inner_ctx.run_id == "run-TEST"

        after_ctx = get_correlation_context()
        assert after_ctx.run_id is None

    def test_context_isolated_per_task(self):
        """Concurrent tasks each see only their own trace_number."""
        from core.observability.logging import get_correlation_context, with_correlation

        async def worker(number: str) -> str:
            with with_correlation(trace_number=number):
                await asyncio.sleep(0)
                return get_correlation_context().trace_number

        async def main():
            return await asyncio.gather(worker("A"), worker("B"), worker("C"))

        assert asyncio.run(main()) == ["A", "B", "C"]

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON with Korean text intact."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(run_id="run-001"):
            record = logging.LogRecord(
                name="test",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg="한우 등심 저장",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"added": 2}

            output = formatter.format(record)
            data = json.loads(output)

            assert data["message"] == "한우 등심 저장"
            assert data["run_id"] == "run-001"
            assert data["added"] == 2
            assert "한우" in output

    def test_human_readable_formatter_includes_correlation(self):
        """HumanReadableFormatter shows run id and extra fields."""
        from core.observability.logging import HumanReadableFormatter, with_correlation

        formatter = HumanReadableFormatter()
        with with_correlation(run_id="run-9", trace_number="002191046216"):
            record = logging.LogRecord(
                name="certificate_resolver.engine",
                level=logging.INFO,
                pathname="engine.py",
                lineno=1,
                msg="Lookup success",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"duration_ms": 12.5}
            output = formatter.format(record)

        assert "[run-9/002191046216]" in output
        assert "duration_ms=12.5" in output


class TestResolutionMetrics:
    """A resolution run is reflected in the metrics summary."""

    def test_run_records_lookups(self):
        from core.models.certificate import CertificateData
        from core.models.traceability import TraceabilityRecord
        from core.observability import get_metrics
        from certificate_resolver import ResolutionRun

        class FakeLookup:
            async def fetch_certificate(self, trace_number):
                if trace_number.endswith("7"):
                    raise RuntimeError("boom")
                return CertificateData(animal_no=trace_number, total_count=0)

        before = get_metrics().get_summary()["lookups"]

        run = ResolutionRun(
            [
                TraceabilityRecord(trace_number="002191046216"),
                TraceabilityRecord(trace_number="002191046217"),
                TraceabilityRecord(trace_number="12345"),
            ],
            FakeLookup(),
        )
        asyncio.run(run.run())

        after = get_metrics().get_summary()["lookups"]
        assert after["started"] == before["started"] + 2
        assert after["succeeded"] == before["succeeded"] + 1
        assert after["failed"] == before["failed"] + 1
        assert after["skipped"] == before["skipped"] + 1
        assert after["runs_completed"] == before["runs_completed"] + 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
