"""
Domain-level exceptions for the compliance guard.

These exceptions represent business rule violations and domain logic errors.
Inside the policy core, exhaustion and content-safety failures are returned as
data (booleans, verdicts, scan outcomes). The application layer raises these
exceptions to signal an outcome to the API layer, where they are mapped to
HTTP responses.
"""

from typing import Iterable, Optional


class DomainException(Exception):
    """Base exception for all domain-level errors."""
    pass


class ValidationError(DomainException):
    """Raised when domain validation rules are violated."""
    pass


class ValidationFailedError(ValidationError):
    """Raised when an upload candidate fails structural validation.

    Carries every failing reason so the user can fix all of them in one pass.
    """

    def __init__(self, filename: Optional[str], errors: Iterable[str]):
        self.filename = filename
        self.errors = list(errors)

        filename_str = f" '{filename}'" if filename else ""
        message = f"File{filename_str} failed validation: {'; '.join(self.errors)}"
        super().__init__(message)


class FileSizeExceededError(ValidationError):
    """Raised when uploaded file exceeds size limits."""

    def __init__(self, actual_size: int, max_size: int, filename: str = None):
        self.actual_size = actual_size
        self.max_size = max_size
        self.filename = filename

        size_mb = actual_size / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)

        filename_str = f" '{filename}'" if filename else ""
        message = f"File{filename_str} size {size_mb:.2f}MB exceeds maximum allowed size of {max_mb:.2f}MB"
        super().__init__(message)


class InvalidFileError(ValidationError):
    """Raised when uploaded file is invalid or corrupted."""

    def __init__(self, filename: str = None, reason: str = None):
        self.filename = filename
        self.reason = reason

        filename_str = f" '{filename}'" if filename else ""
        reason_str = f": {reason}" if reason else ""
        message = f"Invalid file{filename_str}{reason_str}"
        super().__init__(message)


class BatchTooLargeError(ValidationError):
    """Raised when a batch upload holds more files than the policy allows."""

    def __init__(self, file_count: int, max_files: int):
        self.file_count = file_count
        self.max_files = max_files
        super().__init__(
            f"Batch contains {file_count} files, maximum allowed is {max_files}"
        )


class ContentUnsafeError(DomainException):
    """Raised when a structurally valid file fails content scanning.

    This is a security event, not a user mistake; retrying with the same file
    will fail again.
    """

    def __init__(self, filename: Optional[str], reason: Optional[str] = None):
        self.filename = filename
        self.reason = reason

        filename_str = f" '{filename}'" if filename else ""
        reason_str = f": {reason}" if reason else ""
        super().__init__(f"File{filename_str} was rejected by content scanning{reason_str}")


class ScanIndeterminateError(DomainException):
    """Raised internally when file content cannot be read or decoded.

    Never surfaces past the validator: it is resolved by the size-based
    fail-open/fail-closed policy.
    """
    pass


class AdmissionDeniedError(DomainException):
    """Raised when a metered action is refused by the usage-limit guard."""

    def __init__(
        self,
        dimension: str,
        limit: Optional[int] = None,
        current: Optional[int] = None,
        tenant_id: Optional[str] = None,
    ):
        self.dimension = dimension
        self.limit = limit
        self.current = current
        self.tenant_id = tenant_id

        label = dimension.replace("_", " ")
        message = f"You've reached the limit for {label}"
        if limit is not None and current is not None:
            message += f" ({current}/{limit})"
        message += ". Please upgrade your plan to continue."
        super().__init__(message)


class NotFoundError(DomainException):
    """Base exception for entities not found."""
    pass


class ProfileNotFoundError(NotFoundError):
    """Raised when a subscription profile is not found."""
    pass


class UploadNotFoundError(NotFoundError):
    """Raised when an upload is not tracked by the orchestrator."""
    pass


class AuthorizationError(DomainException):
    """Base exception for authorization errors."""
    pass


class InsufficientPermissionsError(AuthorizationError):
    """Raised when user lacks required permissions."""
    pass


class ConfigurationError(DomainException):
    """Raised when configuration is invalid or missing."""
    pass


__all__ = [
    "DomainException",
    "ValidationError",
    "ValidationFailedError",
    "FileSizeExceededError",
    "InvalidFileError",
    "BatchTooLargeError",
    "ContentUnsafeError",
    "ScanIndeterminateError",
    "AdmissionDeniedError",
    "NotFoundError",
    "ProfileNotFoundError",
    "UploadNotFoundError",
    "AuthorizationError",
    "InsufficientPermissionsError",
    "ConfigurationError",
]
