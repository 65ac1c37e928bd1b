"""Local filesystem document storage implementing IDocumentStorage.

Accepted documents are written under a per-tenant directory:

    {base_path}/{tenant_id}/{safe_filename}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict
from uuid import UUID

import aiofiles
import structlog

from compliance_guard.domain.interfaces import IDocumentStorage, StoredDocument

logger = structlog.get_logger(__name__)


class LocalDocumentStorageAdapter(IDocumentStorage):
    """
    Local filesystem storage with tenant isolation.

    Tenant identifiers must be UUIDs and filenames must be plain names, so
    no identifier can step outside its tenant directory.

    Example:
        - >>> adapter = LocalDocumentStorageAdapter(base_path="/var/documents")
        - >>> stored = await adapter.store_document(
             content=pdf_bytes,
             safe_filename="contract_1700000000000.pdf",
             tenant_id="550e8400-e29b-41d4-a716-446655440000")
    """

    def __init__(self, base_path: str = "./storage", public_base_url: str = "http://localhost:8000/files"):
        """
        Args:
            base_path: Base directory for document storage. Created if missing.
            public_base_url: URL prefix documents are served from
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

        logger.info(
            "LocalDocumentStorageAdapter initialized",
            base_path=str(self.base_path),
            public_base_url=self.public_base_url,
        )

    def _validate_tenant_id(self, tenant_id: str) -> None:
        try:
            UUID(str(tenant_id))
        except (ValueError, AttributeError, TypeError) as e:
            logger.warning("Invalid tenant_id format", tenant_id=tenant_id, error=str(e))
            raise ValueError("Invalid tenant_id: must be a valid UUID format") from e

    def _validate_filename(self, filename: str) -> None:
        if not filename or not filename.strip():
            raise ValueError("Filename cannot be empty")
        if "/" in filename or "\\" in filename or ".." in filename or "\x00" in filename:
            logger.warning("Rejected unsafe storage filename", filename=filename)
            raise ValueError(f"Invalid filename for storage: {filename!r}")

    def _resolve(self, storage_path: str) -> Path:
        path = (self.base_path / storage_path).resolve()
        if self.base_path not in path.parents:
            raise ValueError(f"Storage path escapes base directory: {storage_path!r}")
        return path

    async def store_document(
        self,
        content: bytes,
        safe_filename: str,
        tenant_id: str,
    ) -> StoredDocument:
        """
        Write document bytes to the tenant's directory.

        Raises:
            ValueError: If tenant_id or safe_filename is invalid
            OSError: If the file cannot be written
        """
        tenant_id = str(tenant_id)
        self._validate_tenant_id(tenant_id)
        self._validate_filename(safe_filename)

        tenant_dir = self.base_path / tenant_id
        file_path = tenant_dir / safe_filename
        storage_path = f"{tenant_id}/{safe_filename}"

        try:
            tenant_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error(
                "Filesystem error storing document",
                tenant_id=tenant_id,
                safe_filename=safe_filename,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise OSError(f"Failed to store document: {e}") from e

        logger.info(
            "Document stored",
            tenant_id=tenant_id,
            storage_path=storage_path,
            file_size=len(content),
        )
        return StoredDocument(
            storage_path=storage_path,
            public_url=f"{self.public_base_url}/{storage_path}",
        )

    async def read_document(self, storage_path: str) -> bytes:
        """
        Raises:
            FileNotFoundError: If nothing is stored at ``storage_path``
        """
        path = self._resolve(storage_path)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete_document(self, storage_path: str) -> bool:
        path = self._resolve(storage_path)
        if not path.is_file():
            logger.debug("Document does not exist for deletion", storage_path=storage_path)
            return False

        try:
            path.unlink()
        except OSError as e:
            logger.error("Filesystem error deleting document", storage_path=storage_path, error=str(e))
            raise OSError(f"Failed to delete document: {e}") from e

        logger.info("Document deleted", storage_path=storage_path)
        return True

    async def check_health(self) -> Dict[str, Any]:
        """Check that the storage directory exists and is writable."""
        try:
            probe = self.base_path / ".health_check"
            async with aiofiles.open(probe, "wb") as f:
                await f.write(b"ok")
            probe.unlink()
            return {
                "service": "LocalDocumentStorageAdapter",
                "status": "healthy",
                "base_path": str(self.base_path),
            }
        except OSError as e:
            logger.error("Storage health check failed", error=str(e))
            return {
                "service": "LocalDocumentStorageAdapter",
                "status": "unhealthy",
                "base_path": str(self.base_path),
                "error": str(e),
            }


__all__ = ["LocalDocumentStorageAdapter"]
