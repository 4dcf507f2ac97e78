"""Prometheus metrics for the invoice API.

Exposes:
- Request counts by endpoint and status
- Request duration histograms
- Invoice upload, OCR and extraction metrics

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Invoice upload metrics
invoices_uploaded_total = Counter(
    "invoices_uploaded_total",
    "Total invoice images uploaded",
    ["status"],  # success, failed
)

invoice_upload_size_bytes = Histogram(
    "invoice_upload_size_bytes",
    "Invoice image upload size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 10485760),  # 1KB to 10MB
)

# OCR processing metrics
ocr_processing_duration_seconds = Histogram(
    "ocr_processing_duration_seconds",
    "OCR processing duration in seconds",
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

ocr_requests_total = Counter(
    "ocr_requests_total",
    "Total OCR processing requests",
    ["status"],  # success, failed
)

# Field extraction metrics
extraction_processing_duration_seconds = Histogram(
    "extraction_processing_duration_seconds",
    "Invoice field extraction duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
)

extraction_requests_total = Counter(
    "extraction_requests_total",
    "Total invoice field extraction requests",
    ["status"],  # success, failed
)

extraction_field_coverage = Histogram(
    "extraction_field_coverage",
    "Share of invoice text fields recognized per document",
    buckets=(0.0, 0.25, 0.5, 0.75, 1.0),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
