"""
Structured Logging with Correlation IDs

Provides logging utilities that automatically include:
- run_id: Links logs to one certificate resolution run
- batch_id: Links logs to one ingestion batch
- trace_number: Links logs to a single traceability number
- source: Ingestion path (label_text, spreadsheet, image, typed)

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(run_id="run-001", trace_number="002192205667"):
        logger.info("Looking up certificate")  # Includes correlation IDs
"""

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import contextmanager


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass
class CorrelationContext:
    """Context for correlating logs across an ingestion batch or resolution run."""
    run_id: Optional[str] = None
    batch_id: Optional[str] = None
    trace_number: Optional[str] = None
    source: Optional[str] = None
    stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "CorrelationContext":
        """Create a new context with merged values."""
        data = self.to_dict()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        return CorrelationContext(**data)


# Each asyncio task gets its own copy, so concurrent lookups never see
# each other's trace_number.
_correlation_context: ContextVar[CorrelationContext] = ContextVar(
    "correlation_context",
    default=CorrelationContext()
)


def get_correlation_context() -> CorrelationContext:
    """Get the current correlation context."""
    return _correlation_context.get()


@contextmanager
def with_correlation(**kwargs):
    """
    Context manager to set correlation IDs for logging.

    Usage:
        with with_correlation(batch_id="batch-1", source="spreadsheet"):
            logger.info("Ingesting")  # Will include batch_id and source
    """
    old_ctx = get_correlation_context()
    new_ctx = old_ctx.merge(**kwargs)
    token = _correlation_context.set(new_ctx)
    try:
        yield new_ctx
    finally:
        _correlation_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that includes correlation context.

    Output format:
    {
        "timestamp": "2026-01-09T12:00:00.000Z",
        "level": "INFO",
        "logger": "certificate_resolver.engine",
        "message": "Lookup succeeded",
        "run_id": "run-001",
        "trace_number": "002192205667",
        "duration_ms": 1500
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_data.update(get_correlation_context().to_dict())

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter that includes key correlation IDs.

    Output format:
    2026-01-09 12:00:00 [INFO ] certificate_resolver.engine [run-001/002192205667]: Lookup succeeded
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_correlation_context()
        parts = [
            ctx.run_id,
            f"batch:{ctx.batch_id}" if ctx.batch_id else None,
            ctx.source if not ctx.run_id else None,
            ctx.trace_number,
        ]
        correlation = "/".join(p for p in parts if p) or "-"
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{correlation}]: {record.getMessage()}"

        extra = getattr(record, "extra_fields", None)
        if extra:
            msg += " " + " ".join(f"{k}={v}" for k, v in extra.items())

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# Logger with Correlation Support
# =============================================================================

class CorrelatedLogger:
    """
    Logger wrapper whose calls accept `extra_fields=` for per-call key/values.

    Correlation IDs are not stored on the record; the formatters read them
    from the context at format time.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, msg: str, *args, extra_fields: Optional[Dict[str, Any]] = None, exc_info=None):
        if not self._logger.isEnabledFor(level):
            return
        if exc_info is True:
            exc_info = sys.exc_info()

        record = self._logger.makeRecord(
            self._logger.name, level, "(unknown file)", 0, msg, args, exc_info,
        )
        record.extra_fields = dict(extra_fields or {})
        self._logger.handle(record)

    def debug(self, msg: str, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.log(logging.ERROR, msg, *args, **kwargs)

    def setLevel(self, level):
        self._logger.setLevel(level)

    def isEnabledFor(self, level):
        return self._logger.isEnabledFor(level)


# =============================================================================
# Logger Factory
# =============================================================================

APP_LOGGERS = ("label_parser", "ingest", "certificate_resolver", "connectors", "production", "api", "core")
QUIET_LOGGERS = ("aiohttp", "httpx", "uvicorn.access")

_loggers: Dict[str, CorrelatedLogger] = {}
_handler: Optional[logging.Handler] = None


def configure_logging(level: int = logging.INFO, json_format: bool = False, force: bool = False):
    """
    Install the stdout handler on the root logger.

    The first call wins unless force is set; a forced call replaces the
    handler installed earlier instead of adding a second one.

    Args:
        level: Logging level for the root and application loggers
        json_format: JSON lines instead of the human-readable format
        force: Reconfigure even if logging was already set up
    """
    global _handler

    if _handler is not None and not force:
        return

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setLevel(level)
    _handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root.setLevel(level)
    root.addHandler(_handler)

    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> CorrelatedLogger:
    """Correlated logger for a module name; configures defaults on first use."""
    if name not in _loggers:
        configure_logging()
        _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return _loggers[name]


# =============================================================================
# Convenience Functions
# =============================================================================

def log_batch_ingested(source: str, added: int, duplicates: int, excluded: int, **kwargs):
    """Log the counts of one ingestion batch under `ingest.<source>`."""
    get_logger(f"ingest.{source}").info(
        f"Batch ingested from {source}: {added} added, {duplicates} duplicate, {excluded} excluded",
        extra_fields=kwargs,
    )


def log_lookup_outcome(trace_number: str, status: str, duration_ms: float = None, **kwargs):
    """Log one certificate lookup outcome."""
    extra = {"status": status, **kwargs}
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 1)
    level = logging.WARNING if status == "error" else logging.INFO
    get_logger("certificate_resolver.lookups").log(
        level, f"Lookup {status}: {trace_number}", extra_fields=extra,
    )
