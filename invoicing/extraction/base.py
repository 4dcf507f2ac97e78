"""Abstract base class for extraction providers.

Keeps the API and record store independent of how invoice fields are found.
The rule-based provider is the only one shipped; others plug into the same
interface through the provider registry.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from invoicing.extraction.schema import InvoiceData
from invoicing.shared.config import Settings


class ExtractionResult(BaseModel):
    """Result of extraction operation.

    Attributes:
        invoice_data: Extracted invoice data or None if extraction failed
        success: Whether operation succeeded
        error: Error message if operation failed
        provider: Name of provider that performed extraction (e.g., 'rules')
    """

    invoice_data: InvoiceData | None
    success: bool
    error: str | None = None
    provider: str


class ExtractionProvider(ABC):
    """Abstract base class for invoice extraction providers."""

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
        """Extract structured invoice data from OCR text.

        Args:
            ocr_text: Raw text from OCR engine

        Returns:
            ExtractionResult with structured invoice data or error
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is available/configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics."""
        pass
