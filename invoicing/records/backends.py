"""Key/value backends holding serialized records.

Records are grouped by kind ('invoices', 'suppliers') and stored as JSON text
keyed by record id. Backends never interpret the documents.
"""

import logging
import threading
from typing import Protocol

from invoicing.storage.service import StorageService

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Raised when the record backend cannot be read or written."""


class RecordBackend(Protocol):
    """Protocol for record backends."""

    def put(self, kind: str, record_id: str, document: str) -> None:
        """Insert or replace a document."""
        ...

    def get(self, kind: str, record_id: str) -> str | None:
        """Fetch a document, None when absent."""
        ...

    def list_all(self, kind: str) -> list[str]:
        """Fetch every document of a kind, in no particular order."""
        ...


class MemoryRecordBackend:
    """Process-local backend used when object storage is not configured."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def put(self, kind: str, record_id: str, document: str) -> None:
        with self._lock:
            self._documents.setdefault(kind, {})[record_id] = document

    def get(self, kind: str, record_id: str) -> str | None:
        with self._lock:
            return self._documents.get(kind, {}).get(record_id)

    def list_all(self, kind: str) -> list[str]:
        with self._lock:
            return list(self._documents.get(kind, {}).values())


class ObjectStorageRecordBackend:
    """Backend storing each record as ``<kind>/<id>.json`` in object storage."""

    def __init__(self, storage: StorageService) -> None:
        self.storage = storage

    @staticmethod
    def _object_name(kind: str, record_id: str) -> str:
        return f"{kind}/{record_id}.json"

    def put(self, kind: str, record_id: str, document: str) -> None:
        result = self.storage.upload_bytes(
            data=document.encode("utf-8"),
            object_name=self._object_name(kind, record_id),
            content_type="application/json",
        )
        if not result.success:
            raise RecordStoreError(f"Failed to store {kind} record {record_id}: {result.error}")

    def get(self, kind: str, record_id: str) -> str | None:
        object_name = self._object_name(kind, record_id)
        if not self.storage.object_exists(object_name):
            return None

        result = self.storage.download_bytes(object_name)
        if not result.success or result.data is None:
            raise RecordStoreError(f"Failed to read {kind} record {record_id}: {result.error}")
        return result.data.decode("utf-8")

    def list_all(self, kind: str) -> list[str]:
        listing = self.storage.list_objects(prefix=f"{kind}/")
        if not listing.success:
            raise RecordStoreError(f"Failed to list {kind} records: {listing.error}")

        documents = []
        for object_name in listing.object_names:
            result = self.storage.download_bytes(object_name)
            if not result.success or result.data is None:
                raise RecordStoreError(f"Failed to read {object_name}: {result.error}")
            documents.append(result.data.decode("utf-8"))
        return documents
