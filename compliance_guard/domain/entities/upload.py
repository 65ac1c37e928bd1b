"""Domain representation of upload candidates and their validation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

ByteReader = Callable[[], Awaitable[bytes]]


class UploadState(str, Enum):
    """Lifecycle of a single upload attempt.

    Pending -> Validating -> (Valid -> Scanning -> (Safe -> Accepted | Unsafe -> Rejected))
                          | (Invalid -> Rejected)
    Withdrawn is reachable from any non-terminal state.
    """

    PENDING = "pending"
    VALIDATING = "validating"
    VALID = "valid"
    INVALID = "invalid"
    SCANNING = "scanning"
    SAFE = "safe"
    UNSAFE = "unsafe"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.ACCEPTED, UploadState.REJECTED, UploadState.WITHDRAWN)


@dataclass(frozen=True, eq=False)
class UploadCandidate:
    """A file offered for upload, before any policy decision.

    Equality is identity: a verdict's ``sanitized_candidate`` is the very
    object that was validated, never a copy.
    """

    name: str
    mime_type: str
    size_bytes: int
    reader: Optional[ByteReader] = field(default=None, repr=False)

    async def read(self) -> bytes:
        """Read the raw bytes of the file.

        Raises:
            OSError: If the candidate has no content reader
        """
        if self.reader is None:
            raise OSError(f"No content available for '{self.name}'")
        return await self.reader()

    @property
    def extension(self) -> str:
        """Lowercase extension including the dot, or empty string."""
        if not self.name or "." not in self.name:
            return ""
        return self.name[self.name.rfind("."):].lower()

    @classmethod
    def from_bytes(cls, name: str, mime_type: str, content: bytes) -> "UploadCandidate":
        """Create a candidate backed by an in-memory buffer."""

        async def _read() -> bytes:
            return content

        return cls(name=name, mime_type=mime_type, size_bytes=len(content), reader=_read)


@dataclass(frozen=True)
class ValidationVerdict:
    """Structured pass/fail result of validating one candidate."""

    is_valid: bool
    errors: Tuple[str, ...] = ()
    sanitized_candidate: Optional[UploadCandidate] = None

    @classmethod
    def from_errors(cls, candidate: UploadCandidate, errors) -> "ValidationVerdict":
        errors = tuple(errors)
        if errors:
            return cls(is_valid=False, errors=errors, sanitized_candidate=None)
        return cls(is_valid=True, errors=(), sanitized_candidate=candidate)


@dataclass(frozen=True)
class ScanOutcome:
    """Result of content scanning.

    ``indeterminate`` marks outcomes decided by the fail-safe size policy
    because the content could not be read or decoded.
    """

    is_safe: bool
    reason: Optional[str] = None
    indeterminate: bool = False

    @classmethod
    def safe(cls) -> "ScanOutcome":
        return cls(is_safe=True)

    @classmethod
    def unsafe(cls, reason: str) -> "ScanOutcome":
        return cls(is_safe=False, reason=reason)


@dataclass(frozen=True)
class UploadPolicy:
    """Client-facing summary of the upload rules."""

    max_file_size: int
    allowed_types: Tuple[str, ...]
    max_files: int
    enable_virus_scanning: bool = True
    enable_content_scanning: bool = True
    quarantine_on_suspicious: bool = True


__all__ = [
    "ByteReader",
    "UploadState",
    "UploadCandidate",
    "ValidationVerdict",
    "ScanOutcome",
    "UploadPolicy",
]
