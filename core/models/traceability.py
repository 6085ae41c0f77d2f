"""Traceability record models.

A TraceabilityRecord is one ingested unit of provenance data, regardless of
which ingestion path produced it (label text, spreadsheet, barcode image or
typed input).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class DeliveryInfo(BaseModel):
    """Shipment metadata recovered from a delivery label.

    Attributes:
        destination: Delivery destination, without the trailing branch code
        cut_name: Cut / part name (e.g. "설도")
        processing_type: Processing form (e.g. "다짐", "슬라이스")
        weight_kg: Net weight as printed, without the unit
    """
    destination: Optional[str] = Field(default=None, description="Delivery destination")
    cut_name: Optional[str] = Field(default=None, description="Cut / part name")
    processing_type: Optional[str] = Field(default=None, description="Processing form")
    weight_kg: Optional[str] = Field(default=None, description="Weight in kg as printed")


class TraceabilityRecord(BaseModel):
    """One ingested traceability number with its display metadata.

    Two records are duplicates iff their identity_key matches: the same
    traceability number with different delivery metadata is a distinct row,
    since one animal may be portioned across several deliveries.
    """
    trace_number: str = Field(..., description="Raw traceability or label number")
    breed_label: str = Field(default="-", description="Breed, or product summary for label rows")
    production_or_birth_date: str = Field(default="-", description="ISO date or '-'")
    delivery: Optional[DeliveryInfo] = Field(default=None, description="Delivery metadata")

    @property
    def identity_key(self) -> str:
        """Composite key used for deduplication."""
        d = self.delivery or DeliveryInfo()
        return (
            self.trace_number
            + (d.destination or "")
            + (d.cut_name or "")
            + (d.processing_type or "")
            + (d.weight_kg or "")
        )


class IngestedRow(BaseModel):
    """A record accepted into the ingest store, with its table state."""
    id: int = Field(..., description="Synthetic row id")
    record: TraceabilityRecord
    selected: bool = Field(default=False, description="Selected for certificate printing")
