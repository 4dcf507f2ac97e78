"""OCR service using Tesseract.

Turns a scanned invoice image into the raw text consumed by field extraction.
Recognition failures are reported in the result instead of raised, so the
caller can decide not to run extraction at all.

Based on pytesseract documentation:
https://github.com/madmaze/pytesseract
"""

import logging
import os
from pathlib import Path

import pytesseract
from PIL import Image
from pydantic import BaseModel

from invoicing.shared.config import Settings

logger = logging.getLogger(__name__)


class OCRResult(BaseModel):
    """Result of OCR operation.

    Attributes:
        text: Extracted text content
        success: Whether operation succeeded
        error: Error message if operation failed
    """

    text: str
    success: bool
    error: str | None = None


class OCRService:
    """OCR service using Tesseract engine."""

    def __init__(self, settings: Settings) -> None:
        """Initialize OCR service.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self._configure_tesseract()

    def _configure_tesseract(self) -> None:
        """Configure Tesseract command path from environment.

        Allows overriding default Tesseract path via TESSERACT_CMD environment variable.
        Common paths:
        - Linux: /usr/bin/tesseract
        - macOS: /opt/homebrew/bin/tesseract or /usr/local/bin/tesseract
        - Windows: C:\\Program Files\\Tesseract-OCR\\tesseract.exe
        """
        tesseract_cmd = os.getenv("TESSERACT_CMD")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        """Check that the Tesseract binary can be executed."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except Exception as e:
            logger.warning(f"Tesseract not available: {e}")
            return False

    def extract_text(self, image_path: Path) -> OCRResult:
        """Extract text from image file.

        Args:
            image_path: Path to image file

        Returns:
            OCRResult with extracted text or error information
        """
        try:
            if not image_path.exists():
                return OCRResult(
                    text="", success=False, error=f"Image file not found: {image_path}"
                )

            with Image.open(image_path) as image:
                text = pytesseract.image_to_string(image, lang=self.settings.ocr_language)

            logger.info(f"Recognized {len(text)} characters from {image_path.name}")
            return OCRResult(text=text, success=True)

        except Exception as e:
            logger.error(f"OCR failed for {image_path}: {e}")
            return OCRResult(text="", success=False, error=f"OCR processing failed: {str(e)}")
