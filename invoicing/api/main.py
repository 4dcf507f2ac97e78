"""FastAPI application for invoice capture.

Provides:
- Health and readiness checks
- Invoice image upload with OCR and rule-based field extraction
- Invoice CRUD and offline sync
- Supplier directory
- Prometheus metrics

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel, ValidationError

from invoicing.api import metrics
from invoicing.extraction.factory import create_extraction_service
from invoicing.extraction.rule_provider import field_coverage
from invoicing.extraction.schema import InvoiceData
from invoicing.ocr.service import OCRService
from invoicing.records.backends import RecordStoreError
from invoicing.records.models import InvoiceRecord, SupplierRecord, SyncedInvoice
from invoicing.records.repository import create_record_store
from invoicing.shared.config import get_settings
from invoicing.shared.log_setup import configure_logging
from invoicing.storage.service import StorageService

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Capture Service",
    description="Create, store and extract structured invoices from scanned images",
    version=settings.service_version,
)

ocr_service = OCRService(settings)
extraction_service = create_extraction_service(settings)
storage_service = StorageService(settings)
record_store = create_record_store(settings, storage_service)

DATABASE_ERROR = "Database error"


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request count and duration metrics."""
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class ApiHealthResponse(BaseModel):
    """Liveness response for the invoice API."""

    status: str
    timestamp: datetime


class CreateInvoiceRequest(BaseModel):
    """Manually entered invoice."""

    processed_data: dict[str, Any] | None = None
    status: str | None = None


class CreateInvoiceResponse(BaseModel):
    """Result of creating an invoice."""

    id: str
    status: str
    message: str


class UploadResponse(BaseModel):
    """Result of uploading and processing an invoice image."""

    id: str
    status: str
    data: InvoiceData
    extracted_text: str


class UpdateInvoiceRequest(BaseModel):
    """Edited invoice data."""

    processed_data: InvoiceData


class SyncRequest(BaseModel):
    """Invoices collected by a client while offline."""

    invoices: Any = None


class SupplierRequest(BaseModel):
    """New supplier."""

    name: str | None = None
    tax_id: str = ""
    address: str = ""


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint."""
    return ReadinessResponse(ready=True)


@app.get("/api/health", response_model=ApiHealthResponse, tags=["Health"])
def api_health() -> ApiHealthResponse:
    """Health check with server timestamp."""
    return ApiHealthResponse(status="OK", timestamp=datetime.now(timezone.utc))


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint."""
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/invoices", response_model=CreateInvoiceResponse, tags=["Invoices"])
def create_invoice(request: CreateInvoiceRequest) -> CreateInvoiceResponse:
    """Create an invoice from manually entered data.

    Any ``id`` inside processed_data is ignored; a new id is always generated.

    Raises:
        HTTPException: 400 if processed_data is missing or invalid, 500 on storage failure
    """
    if request.processed_data is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice data is required"
        )

    data = {key: value for key, value in request.processed_data.items() if key != "id"}
    try:
        processed_data = InvoiceData.model_validate(data)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid invoice data: {e}"
        ) from e

    try:
        record = record_store.create_invoice(processed_data, status=request.status or "created")
    except RecordStoreError as e:
        logger.error(f"Failed to create invoice: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e

    return CreateInvoiceResponse(
        id=record.id, status="created", message="Invoice created successfully"
    )


@app.post("/api/invoices/upload", response_model=UploadResponse, tags=["Invoices"])
async def upload_invoice(
    invoice: UploadFile = File(..., description="Invoice image (PNG, JPEG, etc.)"),  # noqa: B008
) -> UploadResponse:
    """Upload a scanned invoice, recognize its text and extract invoice fields.

    ## Usage

    ```bash
    curl -X POST "http://localhost:8000/api/invoices/upload" -F "invoice=@invoice.png"
    ```

    ## Error Handling

    - Returns 400 if the file is missing, empty, too large or not an image
    - Returns 500 if OCR fails (extraction is not attempted) or the record cannot be stored

    Extraction itself never fails: unrecognized documents produce a mostly
    empty invoice that can be edited afterwards.
    """
    if not invoice.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    if not invoice.content_type or not invoice.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {invoice.content_type}. Only images are supported.",
        )

    content = await invoice.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large: {len(content)} bytes (max {settings.max_upload_bytes})",
        )

    metrics.invoice_upload_size_bytes.observe(len(content))

    suffix = Path(invoice.filename).suffix
    stored_filename = f"{int(time.time() * 1000)}{suffix}"
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(content)
        tmp_path = Path(tmp.name)

    try:
        ocr_start = time.time()
        result = ocr_service.extract_text(tmp_path)
        metrics.ocr_processing_duration_seconds.observe(time.time() - ocr_start)

        if not result.success:
            metrics.ocr_requests_total.labels(status="failed").inc()
            metrics.invoices_uploaded_total.labels(status="failed").inc()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"OCR processing failed: {result.error}",
            )
        metrics.ocr_requests_total.labels(status="success").inc()

        extraction_start = time.time()
        extraction_result = extraction_service.extract_invoice_fields(result.text)
        metrics.extraction_processing_duration_seconds.observe(time.time() - extraction_start)

        if extraction_result.success and extraction_result.invoice_data is not None:
            processed_data = extraction_result.invoice_data
            metrics.extraction_requests_total.labels(status="success").inc()
            metrics.extraction_field_coverage.observe(field_coverage(processed_data))
        else:
            # Keep the upload usable: store an empty invoice for manual editing
            logger.warning(f"Extraction failed: {extraction_result.error}")
            processed_data = InvoiceData()
            metrics.extraction_requests_total.labels(status="failed").inc()

        if storage_service.is_available():
            image_result = storage_service.upload_bytes(
                data=content,
                object_name=f"uploads/{stored_filename}",
                content_type=invoice.content_type,
            )
            if not image_result.success:
                logger.warning(f"Could not keep uploaded image: {image_result.error}")

        try:
            record = record_store.create_invoice(
                processed_data,
                status="processed",
                filename=stored_filename,
                original_filename=invoice.filename,
                extracted_text=result.text,
            )
        except RecordStoreError as e:
            logger.error(f"Failed to store processed invoice: {e}")
            metrics.invoices_uploaded_total.labels(status="failed").inc()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
            ) from e

        metrics.invoices_uploaded_total.labels(status="success").inc()
        return UploadResponse(
            id=record.id,
            status=record.status,
            data=processed_data,
            extracted_text=result.text,
        )

    finally:
        if tmp_path.exists():
            tmp_path.unlink()


@app.get("/api/invoices", response_model=list[InvoiceRecord], tags=["Invoices"])
def list_invoices() -> list[InvoiceRecord]:
    """List all invoices, newest first."""
    try:
        return record_store.list_invoices()
    except RecordStoreError as e:
        logger.error(f"Failed to list invoices: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e


@app.get("/api/invoices/{invoice_id}", response_model=InvoiceRecord, tags=["Invoices"])
def get_invoice(invoice_id: str) -> InvoiceRecord:
    """Fetch one invoice.

    Raises:
        HTTPException: 404 if the invoice does not exist
    """
    try:
        record = record_store.get_invoice(invoice_id)
    except RecordStoreError as e:
        logger.error(f"Failed to read invoice {invoice_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e

    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return record


@app.put("/api/invoices/{invoice_id}", response_model=MessageResponse, tags=["Invoices"])
def update_invoice(invoice_id: str, request: UpdateInvoiceRequest) -> MessageResponse:
    """Replace an invoice's data.

    Raises:
        HTTPException: 404 if the invoice does not exist
    """
    try:
        record = record_store.update_invoice(invoice_id, request.processed_data)
    except RecordStoreError as e:
        logger.error(f"Failed to update invoice {invoice_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e

    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return MessageResponse(message="Invoice updated successfully")


@app.post("/api/sync", response_model=MessageResponse, tags=["Invoices"])
def sync_invoices(request: SyncRequest) -> MessageResponse:
    """Insert or replace invoices created while a client was offline.

    Raises:
        HTTPException: 400 if the payload has no invoice list
    """
    if not isinstance(request.invoices, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid sync data")

    try:
        invoices = [SyncedInvoice.model_validate(item) for item in request.invoices]
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid sync data: {e}"
        ) from e

    try:
        record_store.sync_invoices(invoices)
    except RecordStoreError as e:
        logger.error(f"Sync failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Sync failed"
        ) from e

    return MessageResponse(message="Sync completed successfully")


@app.get("/api/suppliers", response_model=list[SupplierRecord], tags=["Suppliers"])
def list_suppliers() -> list[SupplierRecord]:
    """List suppliers ordered by name."""
    try:
        return record_store.list_suppliers()
    except RecordStoreError as e:
        logger.error(f"Failed to list suppliers: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e


@app.post("/api/suppliers", response_model=SupplierRecord, tags=["Suppliers"])
def create_supplier(request: SupplierRequest) -> SupplierRecord:
    """Add a supplier.

    Raises:
        HTTPException: 400 if name is missing
    """
    if not request.name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Supplier name is required"
        )

    try:
        return record_store.create_supplier(
            request.name, tax_id=request.tax_id, address=request.address
        )
    except RecordStoreError as e:
        logger.error(f"Failed to create supplier: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=DATABASE_ERROR
        ) from e
