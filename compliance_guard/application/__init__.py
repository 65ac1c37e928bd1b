"""Application layer services orchestrating domain workflows."""

from .admission import AdmissionController, Reservation
from .dependencies import UploadDependencies, UsageDependencies
from .upload_service import UploadApplicationService, UploadResult
from .usage_service import UsageApplicationService

__all__ = [
    "AdmissionController",
    "Reservation",
    "UploadDependencies",
    "UsageDependencies",
    "UploadApplicationService",
    "UploadResult",
    "UsageApplicationService",
]
