"""Core module - shared models, configuration, storage and observability.

This module holds the canonical traceability and certificate models used by
every ingestion path and by the certificate resolution engine. It is
intentionally independent of the grading API: wire-level details of the
upstream service belong in /connectors/.
"""

__version__ = "1.0.0"
