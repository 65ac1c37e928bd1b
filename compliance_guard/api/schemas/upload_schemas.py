"""Upload API request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from compliance_guard.application.upload_service import UploadResult
from compliance_guard.domain.entities.upload import UploadPolicy


class UploadResponse(BaseModel):
    """Outcome of one upload."""

    upload_id: str = Field(..., description="Identifier used to withdraw or query the upload")
    filename: str = Field(..., description="Name as supplied by the client")
    state: str = Field(..., description="accepted, rejected or withdrawn")
    errors: List[str] = Field(default_factory=list)
    safe_filename: Optional[str] = None
    storage_path: Optional[str] = None
    public_url: Optional[str] = None
    scan_indeterminate: bool = Field(
        default=False,
        description="True when the content could not be scanned and the size policy decided",
    )

    @classmethod
    def from_result(cls, result: UploadResult) -> "UploadResponse":
        return cls(
            upload_id=str(result.upload_id),
            filename=result.filename,
            state=result.state.value,
            errors=list(result.errors),
            safe_filename=result.safe_filename,
            storage_path=result.storage_path,
            public_url=result.public_url,
            scan_indeterminate=result.scan_indeterminate,
        )


class BatchUploadResponse(BaseModel):
    """Per-file outcomes of a batch upload, in submission order."""

    total_files: int = Field(..., ge=0)
    accepted: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)
    results: List[UploadResponse] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[UploadResult]) -> "BatchUploadResponse":
        responses = [UploadResponse.from_result(r) for r in results]
        accepted = sum(1 for r in results if r.accepted)
        return cls(
            total_files=len(results),
            accepted=accepted,
            rejected=len(results) - accepted,
            results=responses,
        )


class WithdrawResponse(BaseModel):
    upload_id: str
    withdrawn: bool
    state: str


class UploadStateResponse(BaseModel):
    upload_id: str
    state: str


class InFlightUploadsResponse(BaseModel):
    """Uploads still being validated or scanned."""

    upload_ids: List[str] = Field(default_factory=list)


class UploadPolicyResponse(BaseModel):
    """Upload rules the client should enforce before sending files."""

    max_file_size: int
    allowed_types: List[str]
    max_files: int
    enable_virus_scanning: bool
    enable_content_scanning: bool
    quarantine_on_suspicious: bool

    @classmethod
    def from_policy(cls, policy: UploadPolicy) -> "UploadPolicyResponse":
        return cls(
            max_file_size=policy.max_file_size,
            allowed_types=list(policy.allowed_types),
            max_files=policy.max_files,
            enable_virus_scanning=policy.enable_virus_scanning,
            enable_content_scanning=policy.enable_content_scanning,
            quarantine_on_suspicious=policy.quarantine_on_suspicious,
        )


__all__ = [
    "UploadResponse",
    "BatchUploadResponse",
    "WithdrawResponse",
    "UploadStateResponse",
    "InFlightUploadsResponse",
    "UploadPolicyResponse",
]
