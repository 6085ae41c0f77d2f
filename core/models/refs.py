"""Reference model for documents persisted by core.storage."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """Reference to a stored JSON document with integrity metadata.

    Attributes:
        storage_uri: Absolute file path to the document
        content_hash: SHA256 hash of the stored bytes
        size_bytes: Size of the document in bytes
        stored_at: Timestamp when the document was written
    """
    storage_uri: str = Field(..., description="Absolute file path to the document")
    content_hash: str = Field(..., description="SHA256 hash of content")
    size_bytes: int = Field(..., description="Size in bytes")
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Storage timestamp")
