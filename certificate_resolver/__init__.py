"""Certificate Resolution Engine.

Resolves grading certificates for selected rows, one lookup per distinct
traceability number, and turns successful results into printable documents.

Usage:
    from certificate_resolver import ResolutionRun

    run = ResolutionRun(store.selected_records(), client)
    await run.run()
    print(f"{run.loaded}/{run.total} resolved")
    documents = run.commit(business_info)
"""

from certificate_resolver.engine import (
    CertificateLookup,
    CertificateRow,
    ResolutionRun,
    ResolutionRegistry,
    ResolutionNotCompleteError,
    INVALID_FORMAT_REASON,
    NETWORK_ERROR_MESSAGE,
)
from certificate_resolver.documents import (
    build_certificate_documents,
    format_korean_date,
    GRADE_PENDING_NOTICE,
)

__all__ = [
    # Engine
    "CertificateLookup",
    "CertificateRow",
    "ResolutionRun",
    "ResolutionRegistry",
    "ResolutionNotCompleteError",
    "INVALID_FORMAT_REASON",
    "NETWORK_ERROR_MESSAGE",
    # Documents
    "build_certificate_documents",
    "format_korean_date",
    "GRADE_PENDING_NOTICE",
]
