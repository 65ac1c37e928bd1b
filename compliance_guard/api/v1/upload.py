"""
Upload API Endpoints

Guarded document upload endpoints with:
- Plan-limit admission before any work is done
- Structural validation reporting every failing reason
- Content scanning for forged files and embedded payloads
- Batch upload with per-file results
- Withdrawal of in-flight uploads
"""

from typing import List

import structlog
from fastapi import APIRouter, File, HTTPException, UploadFile

from compliance_guard.api.converters import upload_file_to_candidate
from compliance_guard.api.dependencies import (
    CurrentTenantDep,
    DocumentWriterDep,
    UploadServiceDep,
    UploadValidatorDep,
    map_domain_exception_to_http,
)
from compliance_guard.api.schemas.upload_schemas import (
    BatchUploadResponse,
    InFlightUploadsResponse,
    UploadPolicyResponse,
    UploadResponse,
    UploadStateResponse,
    WithdrawResponse,
)
from compliance_guard.core.config import get_settings
from compliance_guard.domain.exceptions import DomainException

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/upload", tags=["upload"])


def _internal_error(error: str, message: str, exc: Exception) -> HTTPException:
    settings = get_settings()
    return HTTPException(
        status_code=500,
        detail={
            "error": error,
            "message": message,
            "details": str(exc) if settings.ENVIRONMENT in ("local", "development") else None,
        },
    )


@router.get("/policy", response_model=UploadPolicyResponse)
async def get_upload_policy(validator: UploadValidatorDep) -> UploadPolicyResponse:
    """Upload limits and accepted types for client-side pre-checks."""
    return UploadPolicyResponse.from_policy(validator.get_upload_policy())


@router.post("", response_model=UploadResponse)
async def upload_document(
    current_tenant: DocumentWriterDep,
    upload_service: UploadServiceDep,
    file: UploadFile = File(..., description="Document (PDF, DOC, DOCX, TXT, CSV, XLS, XLSX)"),
) -> UploadResponse:
    """
    Upload a single document.

    - **403**: the user lacks write:documents
    - **402**: the plan's document limit is reached
    - **400**: the file failed validation; every reason is listed
    - **422**: the content scan rejected the file
    """
    candidate = await upload_file_to_candidate(file)
    try:
        result = await upload_service.upload_document(
            current_tenant.tenant_id,
            current_tenant.user_id,
            candidate,
        )
    except DomainException as domain_exc:
        # Map domain exceptions to appropriate HTTP responses
        raise map_domain_exception_to_http(domain_exc)
    except Exception as exc:  # pragma: no cover - unexpected failures bubble as 500
        logger.error("Document upload failed", filename=file.filename, error=str(exc))
        raise _internal_error("upload_failed", "Document upload could not be completed", exc)

    return UploadResponse.from_result(result)


@router.post("/batch", response_model=BatchUploadResponse)
async def upload_documents_batch(
    current_tenant: DocumentWriterDep,
    upload_service: UploadServiceDep,
    files: List[UploadFile] = File(..., description="Documents to upload"),
) -> BatchUploadResponse:
    """
    Upload several documents at once.

    Each file gets its own result; files beyond the remaining document
    allowance are rejected individually rather than failing the batch.
    """
    candidates = [await upload_file_to_candidate(f) for f in files]
    try:
        results = await upload_service.upload_documents_batch(
            current_tenant.tenant_id,
            current_tenant.user_id,
            candidates,
        )
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)
    except Exception as exc:  # pragma: no cover
        logger.error("Batch upload failed", file_count=len(files), error=str(exc))
        raise _internal_error("batch_upload_failed", "Batch upload could not be completed", exc)

    return BatchUploadResponse.from_results(results)


@router.get("/in-flight", response_model=InFlightUploadsResponse)
async def list_in_flight_uploads(
    current_tenant: CurrentTenantDep,
    upload_service: UploadServiceDep,
) -> InFlightUploadsResponse:
    """Uploads of the current tenant that can still be withdrawn."""
    upload_ids = upload_service.get_in_flight_uploads(current_tenant.tenant_id)
    return InFlightUploadsResponse(upload_ids=[str(u) for u in upload_ids])


@router.get("/{upload_id}", response_model=UploadStateResponse)
async def get_upload_state(
    upload_id: str,
    current_tenant: CurrentTenantDep,
    upload_service: UploadServiceDep,
) -> UploadStateResponse:
    try:
        state = upload_service.get_upload_state(upload_id, current_tenant.tenant_id)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)

    return UploadStateResponse(upload_id=upload_id, state=state.value)


@router.delete("/{upload_id}", response_model=WithdrawResponse)
async def withdraw_upload(
    upload_id: str,
    current_tenant: DocumentWriterDep,
    upload_service: UploadServiceDep,
) -> WithdrawResponse:
    """Withdraw an upload that is still being validated or scanned."""
    try:
        withdrawn = upload_service.withdraw(upload_id, current_tenant.tenant_id)
        state = upload_service.get_upload_state(upload_id, current_tenant.tenant_id)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)

    return WithdrawResponse(upload_id=upload_id, withdrawn=withdrawn, state=state.value)
