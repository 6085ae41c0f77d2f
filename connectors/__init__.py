"""Connectors - External service integrations.

The certificate resolution engine depends only on the lookup interface
(`fetch_certificate(trace_number) -> CertificateData`). This package holds the concrete
clients behind it:

- ekape/: Livestock grading confirmation API (two-stage XML lookup)

Key Design Principle:
- Connectors return NORMALIZED types (CertificateData, IssueItem, GradeDetail)
- No raw XML or upstream field names leak past the connector
"""

from connectors.ekape import (
    EkapeClient,
    EkapeConfig,
    EkapeApiError,
    EkapeNotFoundError,
    EkapeResponseError,
)

__all__ = [
    "EkapeClient",
    "EkapeConfig",
    "EkapeApiError",
    "EkapeNotFoundError",
    "EkapeResponseError",
]
