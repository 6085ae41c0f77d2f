"""Core data models - canonical traceability and certificate types.

This package contains the models shared by every ingestion path, the
certificate resolution engine and the HTTP API.
"""

from core.models.traceability import (
    DeliveryInfo,
    TraceabilityRecord,
    IngestedRow,
)

from core.models.certificate import (
    # Upstream payload
    IssueItem,
    GradeDetail,
    CertificateData,
    details_from_items,

    # Resolution state
    LookupStatus,
    CertificateLookupResult,

    # Printable documents
    BusinessInfo,
    CertificateDocument,
)

from core.models.refs import StoredDocument

__all__ = [
    # Traceability
    "DeliveryInfo",
    "TraceabilityRecord",
    "IngestedRow",

    # Certificate payload
    "IssueItem",
    "GradeDetail",
    "CertificateData",
    "details_from_items",

    # Resolution state
    "LookupStatus",
    "CertificateLookupResult",

    # Documents
    "BusinessInfo",
    "CertificateDocument",

    # References
    "StoredDocument",
]
