"""API request/response schemas."""

from .upload_schemas import (
    BatchUploadResponse,
    InFlightUploadsResponse,
    UploadPolicyResponse,
    UploadResponse,
    UploadStateResponse,
    WithdrawResponse,
)
from .usage_schemas import AdmissionResponse, DimensionUsageResponse, UsageSummaryResponse

__all__ = [
    "BatchUploadResponse",
    "InFlightUploadsResponse",
    "UploadPolicyResponse",
    "UploadResponse",
    "UploadStateResponse",
    "WithdrawResponse",
    "AdmissionResponse",
    "DimensionUsageResponse",
    "UsageSummaryResponse",
]
