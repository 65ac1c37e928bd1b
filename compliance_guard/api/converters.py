"""Conversions between HTTP upload objects and domain candidates."""

from __future__ import annotations

from fastapi import UploadFile

from compliance_guard.domain.entities.upload import UploadCandidate

DEFAULT_MIME_TYPE = "application/octet-stream"


async def upload_file_to_candidate(file: UploadFile) -> UploadCandidate:
    """
    Wrap a multipart upload as a candidate without reading it up front.

    The declared size comes from the spooled file when the server knows it;
    otherwise the content is read once to measure it.
    """
    size = getattr(file, "size", None)
    if size is None:
        content = await file.read()
        size = len(content)

    async def _read() -> bytes:
        await file.seek(0)
        return await file.read()

    return UploadCandidate(
        name=file.filename or "",
        mime_type=file.content_type or DEFAULT_MIME_TYPE,
        size_bytes=size,
        reader=_read,
    )


__all__ = ["upload_file_to_candidate"]
