"""Provider utilities for document storage."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from compliance_guard.core.config import get_settings
from compliance_guard.domain.interfaces import IDocumentStorage
from compliance_guard.infrastructure.adapters.local_document_storage_adapter import (
    LocalDocumentStorageAdapter,
)

logger = structlog.get_logger(__name__)

_document_storage: Optional[IDocumentStorage] = None
_storage_lock = asyncio.Lock()


async def get_document_storage() -> IDocumentStorage:
    """
    Return the singleton document storage configured via settings.

    Example:
        ```python
        storage = await get_document_storage()
        stored = await storage.store_document(content, safe_filename, tenant_id)
        ```
    """
    global _document_storage

    if _document_storage is not None:
        return _document_storage

    async with _storage_lock:
        if _document_storage is not None:
            return _document_storage

        settings = get_settings()
        _document_storage = LocalDocumentStorageAdapter(
            base_path=settings.LOCAL_STORAGE_PATH,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
        logger.info(
            "Document storage initialized",
            storage_type="local",
            base_path=settings.LOCAL_STORAGE_PATH,
        )
        return _document_storage


async def reset_document_storage() -> None:
    """Reset document storage singleton."""
    global _document_storage
    async with _storage_lock:
        _document_storage = None


__all__ = [
    "get_document_storage",
    "reset_document_storage",
]
