"""Persisted invoice and supplier records."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from invoicing.extraction.schema import InvoiceData


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceRecord(BaseModel):
    """Stored invoice with the bookkeeping around its extracted data.

    Attributes:
        id: Generated unique identifier (UUID4)
        filename: Name the uploaded image was stored under
        original_filename: Name of the file as uploaded by the user
        extracted_text: Raw OCR text the data was extracted from
        processed_data: Structured invoice data (extracted or user-entered)
        status: Lifecycle marker ('pending', 'created', 'processed', 'synced')
    """

    id: str
    filename: str = ""
    original_filename: str = ""
    extracted_text: str = ""
    processed_data: InvoiceData | None = None
    status: str = "pending"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SupplierRecord(BaseModel):
    """Known supplier."""

    id: str
    name: str
    tax_id: str = ""
    address: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class SyncedInvoice(BaseModel):
    """Invoice pushed by a client that kept working while offline."""

    id: str
    filename: str = ""
    original_filename: str = ""
    extracted_text: str = ""
    processed_data: InvoiceData = Field(default_factory=InvoiceData)
    status: str = "synced"
