"""Infrastructure adapters."""

from .local_document_storage_adapter import LocalDocumentStorageAdapter

__all__ = ["LocalDocumentStorageAdapter"]
