"""Unit tests for the invoice API.

Tests cover:
- Health check endpoints
- Invoice upload validation, OCR failure and extraction
- Invoice CRUD and offline sync
- Supplier endpoints
- Storage failures and Prometheus metrics
"""

import io
from unittest.mock import MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from PIL import Image

from invoicing.api import main
from invoicing.api.main import app
from invoicing.extraction.schema import InvoiceData
from invoicing.ocr.service import OCRResult
from invoicing.records.backends import MemoryRecordBackend, RecordStoreError
from invoicing.records.repository import InvoiceRepository

SCANNED_TEXT = """INVOICE #INV-2024-042
Date: 04/05/2024
From: Northwind Traders
Bill To: Contoso Ltd
Paper Ream 4 5.25
Tax: 5%
Total: $22.05
"""


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def fresh_record_store(monkeypatch: pytest.MonkeyPatch) -> InvoiceRepository:
    """Give every test an empty in-memory record store."""
    store = InvoiceRepository(MemoryRecordBackend())
    monkeypatch.setattr(main, "record_store", store)
    return store


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create a simple test image as bytes."""
    img = Image.new("RGB", (200, 100), color="white")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format="PNG")
    return img_bytes.getvalue()


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "invoice-capture-service"


def test_readiness_check(client: TestClient) -> None:
    response = client.get("/ready")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["ready"] is True


def test_api_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "OK"
    assert "timestamp" in data


class TestUpload:
    """POST /api/invoices/upload"""

    def test_upload_extracts_and_stores(
        self,
        client: TestClient,
        sample_image_bytes: bytes,
        fresh_record_store: InvoiceRepository,
    ) -> None:
        files = {"invoice": ("scan.png", sample_image_bytes, "image/png")}

        with patch("invoicing.api.main.ocr_service.extract_text") as mock_ocr:
            mock_ocr.return_value = OCRResult(text=SCANNED_TEXT, success=True)
            response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "processed"
        assert body["extracted_text"] == SCANNED_TEXT
        data = body["data"]
        assert data["invoice_number"] == "INV-2024-042"
        assert data["date"] == "04/05/2024"
        assert data["due_date"] == ""
        assert data["supplier_name"] == "Northwind Traders"
        assert data["customer_name"] == "Contoso Ltd"
        assert data["total_amount"] == "22.05"
        assert data["currency"] == "USD"
        assert data["tax_rate"] == 5.0
        assert data["items"] == [{"name": "Paper Ream", "quantity": 4, "rate": 5.25}]

        record = fresh_record_store.get_invoice(body["id"])
        assert record is not None
        assert record.status == "processed"
        assert record.original_filename == "scan.png"
        assert record.filename.endswith(".png")
        assert record.extracted_text == SCANNED_TEXT

    def test_upload_unrecognizable_text_still_succeeds(
        self, client: TestClient, sample_image_bytes: bytes
    ) -> None:
        files = {"invoice": ("blank.png", sample_image_bytes, "image/png")}

        with patch("invoicing.api.main.ocr_service.extract_text") as mock_ocr:
            mock_ocr.return_value = OCRResult(text="", success=True)
            response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["invoice_number"] == ""
        assert data["currency"] == "USD"
        assert data["items"] == []

    def test_upload_ocr_failure_skips_extraction(
        self,
        client: TestClient,
        sample_image_bytes: bytes,
        fresh_record_store: InvoiceRepository,
    ) -> None:
        files = {"invoice": ("scan.png", sample_image_bytes, "image/png")}

        with (
            patch("invoicing.api.main.ocr_service.extract_text") as mock_ocr,
            patch("invoicing.api.main.extraction_service.extract_invoice_fields") as mock_extract,
        ):
            mock_ocr.return_value = OCRResult(text="", success=False, error="Unreadable image")
            response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "Unreadable image" in response.json()["detail"]
        mock_extract.assert_not_called()
        assert fresh_record_store.list_invoices() == []

    def test_upload_invalid_file_type(self, client: TestClient) -> None:
        files = {"invoice": ("notes.txt", b"plain text", "text/plain")}

        response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "Invalid file type" in response.json()["detail"]

    def test_upload_empty_file(self, client: TestClient) -> None:
        files = {"invoice": ("empty.png", b"", "image/png")}

        response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Empty file"

    def test_upload_too_large(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            main, "settings", main.settings.model_copy(update={"max_upload_bytes": 4})
        )
        files = {"invoice": ("big.png", b"123456", "image/png")}

        response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "File too large" in response.json()["detail"]

    def test_upload_missing_file(self, client: TestClient) -> None:
        response = client.post("/api/invoices/upload")

        assert response.status_code == 422

    def test_upload_storage_failure(
        self,
        client: TestClient,
        sample_image_bytes: bytes,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        failing_store = MagicMock()
        failing_store.create_invoice.side_effect = RecordStoreError("bucket unavailable")
        monkeypatch.setattr(main, "record_store", failing_store)
        files = {"invoice": ("scan.png", sample_image_bytes, "image/png")}

        with patch("invoicing.api.main.ocr_service.extract_text") as mock_ocr:
            mock_ocr.return_value = OCRResult(text=SCANNED_TEXT, success=True)
            response = client.post("/api/invoices/upload", files=files)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Database error"

    def test_upload_records_metrics(self, client: TestClient, sample_image_bytes: bytes) -> None:
        from invoicing.api import metrics

        before = metrics.extraction_requests_total.labels(status="success")._value.get()
        files = {"invoice": ("scan.png", sample_image_bytes, "image/png")}

        with patch("invoicing.api.main.ocr_service.extract_text") as mock_ocr:
            mock_ocr.return_value = OCRResult(text=SCANNED_TEXT, success=True)
            client.post("/api/invoices/upload", files=files)

        after = metrics.extraction_requests_total.labels(status="success")._value.get()
        assert after == before + 1


class TestInvoiceCrud:
    """Manual invoice creation, listing, fetching and editing."""

    def test_create_invoice(self, client: TestClient, fresh_record_store: InvoiceRepository) -> None:
        payload = {
            "processed_data": {
                "id": "client-side-id",
                "invoice_number": "MAN-1",
                "currency": "GBP",
                "items": [{"name": "Design", "quantity": 3, "rate": 120}],
            }
        }

        response = client.post("/api/invoices", json=payload)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "created"
        assert body["message"] == "Invoice created successfully"
        assert body["id"] != "client-side-id"

        record = fresh_record_store.get_invoice(body["id"])
        assert record is not None
        assert record.status == "created"
        assert record.processed_data is not None
        assert record.processed_data.currency == "GBP"
        assert record.processed_data.items[0].quantity == 3

    def test_create_invoice_keeps_requested_status(
        self, client: TestClient, fresh_record_store: InvoiceRepository
    ) -> None:
        response = client.post(
            "/api/invoices", json={"processed_data": {"invoice_number": "D-1"}, "status": "draft"}
        )

        record = fresh_record_store.get_invoice(response.json()["id"])
        assert record is not None
        assert record.status == "draft"

    def test_create_invoice_requires_data(self, client: TestClient) -> None:
        response = client.post("/api/invoices", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invoice data is required"

    def test_create_invoice_accepts_empty_data(
        self, client: TestClient, fresh_record_store: InvoiceRepository
    ) -> None:
        response = client.post("/api/invoices", json={"processed_data": {}})

        assert response.status_code == status.HTTP_200_OK
        record = fresh_record_store.get_invoice(response.json()["id"])
        assert record is not None
        assert record.processed_data == InvoiceData()

    def test_create_invoice_rejects_invalid_data(self, client: TestClient) -> None:
        response = client.post(
            "/api/invoices", json={"processed_data": {"currency": "JPY"}}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_and_get(self, client: TestClient) -> None:
        created = client.post(
            "/api/invoices", json={"processed_data": {"invoice_number": "L-1"}}
        ).json()

        listed = client.get("/api/invoices").json()
        fetched = client.get(f"/api/invoices/{created['id']}")

        assert [invoice["id"] for invoice in listed] == [created["id"]]
        assert fetched.status_code == status.HTTP_200_OK
        assert fetched.json()["processed_data"]["invoice_number"] == "L-1"

    def test_get_unknown_invoice(self, client: TestClient) -> None:
        response = client.get("/api/invoices/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Invoice not found"

    def test_update_invoice(self, client: TestClient) -> None:
        created = client.post(
            "/api/invoices", json={"processed_data": {"invoice_number": "U-1"}}
        ).json()

        response = client.put(
            f"/api/invoices/{created['id']}",
            json={"processed_data": {"invoice_number": "U-1", "customer_name": "Initech"}},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Invoice updated successfully"
        fetched = client.get(f"/api/invoices/{created['id']}").json()
        assert fetched["processed_data"]["customer_name"] == "Initech"

    def test_update_unknown_invoice(self, client: TestClient) -> None:
        response = client.put("/api/invoices/missing", json={"processed_data": {}})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_storage_failure(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        failing_store = MagicMock()
        failing_store.list_invoices.side_effect = RecordStoreError("unreachable")
        monkeypatch.setattr(main, "record_store", failing_store)

        response = client.get("/api/invoices")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Database error"


class TestSync:
    """POST /api/sync"""

    def test_sync_invoices(self, client: TestClient, fresh_record_store: InvoiceRepository) -> None:
        payload = {
            "invoices": [
                {"id": "offline-1", "processed_data": {"invoice_number": "OFF-1"}},
                {"id": "offline-2", "status": "draft"},
            ]
        }

        response = client.post("/api/sync", json=payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Sync completed successfully"
        first = fresh_record_store.get_invoice("offline-1")
        assert first is not None
        assert first.status == "synced"
        second = fresh_record_store.get_invoice("offline-2")
        assert second is not None
        assert second.status == "draft"

    @pytest.mark.parametrize("payload", [{}, {"invoices": "not-a-list"}])
    def test_sync_requires_list(self, client: TestClient, payload: dict[str, str]) -> None:
        response = client.post("/api/sync", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid sync data"

    def test_sync_requires_ids(self, client: TestClient) -> None:
        response = client.post("/api/sync", json={"invoices": [{"status": "draft"}]})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestSuppliers:
    """Supplier endpoints."""

    def test_create_and_list_suppliers(self, client: TestClient) -> None:
        created = client.post(
            "/api/suppliers", json={"name": "Umbrella", "tax_id": "TX-1", "address": "Raccoon"}
        )
        client.post("/api/suppliers", json={"name": "Acme"})

        assert created.status_code == status.HTTP_200_OK
        assert created.json()["tax_id"] == "TX-1"
        names = [supplier["name"] for supplier in client.get("/api/suppliers").json()]
        assert names == ["Acme", "Umbrella"]

    def test_create_supplier_requires_name(self, client: TestClient) -> None:
        response = client.post("/api/suppliers", json={"tax_id": "TX-1"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Supplier name is required"


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == status.HTTP_200_OK
    assert "http_requests_total" in response.text
    assert "ocr_requests_total" in response.text
