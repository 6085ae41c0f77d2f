"""
Observability Module

Provides:
- Structured logging with correlation IDs (run, batch, traceability number)
- Metrics collection (ingestion batches, lookups, latency)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_batch,
    record_processing_time,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
    log_batch_ingested,
    log_lookup_outcome,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_batch",
    "record_processing_time",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
    "log_batch_ingested",
    "log_lookup_outcome",
]
