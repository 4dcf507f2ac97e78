"""Invoice and supplier record store.

Records are serialized to JSON and kept in a RecordBackend keyed by a
generated UUID. Backend failures surface as RecordStoreError.
"""

import logging
import uuid

from invoicing.extraction.schema import InvoiceData
from invoicing.records.backends import (
    MemoryRecordBackend,
    ObjectStorageRecordBackend,
    RecordBackend,
)
from invoicing.records.models import InvoiceRecord, SupplierRecord, SyncedInvoice, utcnow
from invoicing.shared.config import Settings
from invoicing.storage.service import StorageService

logger = logging.getLogger(__name__)

INVOICES = "invoices"
SUPPLIERS = "suppliers"


class InvoiceRepository:
    """CRUD operations over invoice and supplier records."""

    def __init__(self, backend: RecordBackend) -> None:
        """Initialize repository.

        Args:
            backend: Where serialized records are kept
        """
        self.backend = backend

    def _save(self, record: InvoiceRecord) -> InvoiceRecord:
        self.backend.put(INVOICES, record.id, record.model_dump_json())
        return record

    def create_invoice(
        self,
        processed_data: InvoiceData,
        status: str = "created",
        filename: str = "",
        original_filename: str = "",
        extracted_text: str = "",
    ) -> InvoiceRecord:
        """Store a new invoice under a freshly generated id.

        Args:
            processed_data: Structured invoice data
            status: Initial status
            filename: Stored name of the source image, if any
            original_filename: Uploaded name of the source image, if any
            extracted_text: OCR text the data came from, if any

        Returns:
            The stored record

        Raises:
            RecordStoreError: If the backend write fails
        """
        record = InvoiceRecord(
            id=str(uuid.uuid4()),
            filename=filename,
            original_filename=original_filename,
            extracted_text=extracted_text,
            processed_data=processed_data,
            status=status,
        )
        logger.info(f"Creating invoice record {record.id} (status={status})")
        return self._save(record)

    def get_invoice(self, invoice_id: str) -> InvoiceRecord | None:
        """Fetch an invoice by id, None when unknown."""
        document = self.backend.get(INVOICES, invoice_id)
        if document is None:
            return None
        return InvoiceRecord.model_validate_json(document)

    def list_invoices(self) -> list[InvoiceRecord]:
        """All invoices, newest first."""
        records = [
            InvoiceRecord.model_validate_json(document)
            for document in self.backend.list_all(INVOICES)
        ]
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def update_invoice(
        self, invoice_id: str, processed_data: InvoiceData
    ) -> InvoiceRecord | None:
        """Replace an invoice's data and bump its update timestamp.

        Returns:
            Updated record, or None when no invoice has that id
        """
        existing = self.get_invoice(invoice_id)
        if existing is None:
            return None

        updated = existing.model_copy(
            update={"processed_data": processed_data, "updated_at": utcnow()}
        )
        logger.info(f"Updated invoice record {invoice_id}")
        return self._save(updated)

    def sync_invoices(self, invoices: list[SyncedInvoice]) -> int:
        """Insert or replace client-held invoices by id.

        Args:
            invoices: Invoices collected by a client while it was offline

        Returns:
            Number of records written
        """
        for invoice in invoices:
            existing = self.get_invoice(invoice.id)
            record = InvoiceRecord(
                **invoice.model_dump(exclude={"processed_data"}),
                processed_data=invoice.processed_data,
                updated_at=utcnow(),
            )
            if existing is not None:
                record = record.model_copy(update={"created_at": existing.created_at})
            self._save(record)

        logger.info(f"Synced {len(invoices)} invoice record(s)")
        return len(invoices)

    def create_supplier(self, name: str, tax_id: str = "", address: str = "") -> SupplierRecord:
        """Store a new supplier."""
        supplier = SupplierRecord(id=str(uuid.uuid4()), name=name, tax_id=tax_id, address=address)
        self.backend.put(SUPPLIERS, supplier.id, supplier.model_dump_json())
        logger.info(f"Created supplier {supplier.id}")
        return supplier

    def list_suppliers(self) -> list[SupplierRecord]:
        """All suppliers ordered by name."""
        suppliers = [
            SupplierRecord.model_validate_json(document)
            for document in self.backend.list_all(SUPPLIERS)
        ]
        return sorted(suppliers, key=lambda supplier: supplier.name)


def create_record_store(
    settings: Settings, storage: StorageService | None = None
) -> InvoiceRepository:
    """Create the record store for the configured backend.

    Uses object storage when it is enabled and has credentials, otherwise an
    in-memory backend that lasts for the life of the process.

    Args:
        settings: Application settings with storage configuration
        storage: Existing storage service to share; one is created when omitted

    Returns:
        InvoiceRepository over the selected backend
    """
    storage = storage or StorageService(settings)
    if storage.is_available():
        logger.info(f"Record store: object storage bucket '{settings.storage_bucket}'")
        return InvoiceRepository(ObjectStorageRecordBackend(storage))

    logger.warning("Object storage not configured, records are kept in memory only")
    return InvoiceRepository(MemoryRecordBackend())
