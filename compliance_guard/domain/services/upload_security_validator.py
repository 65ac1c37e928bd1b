"""
Upload security validation with structural checks and content scanning.

Two independent gates protect document storage:
- ``validate_file_upload`` checks metadata only (size, MIME type, extension,
  filename) and reports every failing reason at once;
- ``inspect_content`` reads the bytes and looks for forged containers,
  embedded executables and script payloads.

Content that cannot be read or decoded is resolved by size: small files are
let through, large files are rejected. Scanning never raises into callers.
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Iterable, List, Optional

import structlog

from compliance_guard.domain.entities.upload import (
    ScanOutcome,
    UploadCandidate,
    UploadPolicy,
    ValidationVerdict,
)
from compliance_guard.domain.exceptions import BatchTooLargeError, ScanIndeterminateError
from compliance_guard.domain.services.input_validation import validate_document_name
from compliance_guard.domain.services.upload_rules import DEFAULT_RULES, UploadRuleSet

logger = structlog.get_logger(__name__)

MiB = 1024 * 1024
DEFAULT_MAX_FILE_SIZE = 10 * MiB
DEFAULT_SCAN_FAIL_OPEN_MAX_BYTES = 1 * MiB
DEFAULT_MAX_FILES_PER_BATCH = 10

SAFE_BASENAME_MAX_LENGTH = 50
FALLBACK_BASENAME = "document"
PADDING_RATIO = 3

_UNSAFE_BASENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def _dedupe(errors: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for error in errors:
        if error not in seen:
            seen.add(error)
            unique.append(error)
    return unique


class UploadSecurityValidator:
    """
    Structural validation and content scanning for uploaded documents.

    Args:
        rules: Rule tables (allowlist, blocklist, signatures, threat patterns)
        max_file_size_bytes: Largest accepted file; exactly this size passes
        scan_fail_open_max_bytes: Unreadable files smaller than this are
            allowed, anything at or above it is rejected
        max_files_per_batch: Largest accepted batch
    """

    def __init__(
        self,
        rules: UploadRuleSet = DEFAULT_RULES,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE,
        scan_fail_open_max_bytes: int = DEFAULT_SCAN_FAIL_OPEN_MAX_BYTES,
        max_files_per_batch: int = DEFAULT_MAX_FILES_PER_BATCH,
    ):
        self.rules = rules
        self.max_file_size_bytes = max_file_size_bytes
        self.scan_fail_open_max_bytes = scan_fail_open_max_bytes
        self.max_files_per_batch = max_files_per_batch
        self._logger = structlog.get_logger(__name__)

    async def check_health(self) -> Dict[str, Any]:
        """Health check for the upload security validator."""
        return {
            "service": "UploadSecurityValidator",
            "status": "healthy",
            "allowed_types": list(self.rules.allowed_mime_types),
            "threat_patterns": len(self.rules.threat_patterns),
            "executable_signatures": len(self.rules.executable_signatures),
            "max_file_size_bytes": self.max_file_size_bytes,
        }

    # Structural validation

    def validate_file_upload(self, candidate: UploadCandidate) -> ValidationVerdict:
        """
        Check size, type, extension and filename without reading content.

        All failing reasons are collected so the user can fix them in one
        pass. The verdict's ``sanitized_candidate`` is the original candidate
        when valid and None otherwise.
        """
        errors: List[str] = []

        if candidate.size_bytes > self.max_file_size_bytes:
            errors.append(
                f"File size exceeds maximum limit of {self.max_file_size_bytes // MiB}MB"
            )

        if not self.rules.is_allowed_mime_type(candidate.mime_type):
            errors.append(f"File type '{candidate.mime_type}' is not allowed")

        extension = candidate.extension
        if extension and self.rules.is_dangerous_extension(extension):
            errors.append(f"File extension '{extension}' is not allowed for security reasons")

        errors.extend(self._filename_errors(candidate.name))

        verdict = ValidationVerdict.from_errors(candidate, _dedupe(errors))
        if not verdict.is_valid:
            self._logger.info(
                "Upload failed structural validation",
                filename=candidate.name,
                mime_type=candidate.mime_type,
                size_bytes=candidate.size_bytes,
                errors=list(verdict.errors),
            )
        return verdict

    def validate_batch(self, candidates: Iterable[UploadCandidate]) -> List[ValidationVerdict]:
        """
        Validate every candidate of a batch, in submission order.

        Raises:
            BatchTooLargeError: If the batch holds more files than allowed
        """
        candidates = list(candidates)
        if len(candidates) > self.max_files_per_batch:
            raise BatchTooLargeError(len(candidates), self.max_files_per_batch)
        return [self.validate_file_upload(candidate) for candidate in candidates]

    def _filename_errors(self, name: str) -> List[str]:
        if not name or not name.strip():
            return ["Filename is required"]

        errors: List[str] = []
        if "\x00" in name:
            errors.append("Invalid characters in filename")
        if ".." in name or "/" in name or "\\" in name:
            errors.append("Invalid path characters in filename")

        name_result = validate_document_name(name)
        if not name_result.is_valid:
            errors.extend(name_result.errors)
        return errors

    # Content scanning

    async def scan_file_content(self, candidate: UploadCandidate) -> bool:
        """Return True when the candidate's content is considered safe."""
        outcome = await self.inspect_content(candidate)
        return outcome.is_safe

    async def inspect_content(self, candidate: UploadCandidate) -> ScanOutcome:
        """
        Scan the candidate's bytes and explain the decision.

        Binary containers must start with their magic bytes and may not embed
        a foreign executable. Text types are decoded strictly as UTF-8 and
        matched against the threat patterns. Never raises.
        """
        try:
            outcome = await self._scan(candidate)
        except ScanIndeterminateError as e:
            outcome = self._resolve_indeterminate(candidate, str(e))
        except Exception as e:
            # Outer boundary: any scanner fault goes through the size policy.
            self._logger.error(
                "Content scan failed unexpectedly",
                filename=candidate.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            outcome = self._resolve_indeterminate(candidate, f"Scanner error: {e}")

        if not outcome.is_safe:
            self._logger.warning(
                "Upload rejected by content scan",
                filename=candidate.name,
                mime_type=candidate.mime_type,
                reason=outcome.reason,
                indeterminate=outcome.indeterminate,
            )
        return outcome

    async def _scan(self, candidate: UploadCandidate) -> ScanOutcome:
        try:
            raw = await candidate.read()
        except OSError as e:
            raise ScanIndeterminateError(f"Content could not be read: {e}") from e

        if self.rules.is_binary_type(candidate.mime_type):
            return self._scan_binary(candidate.mime_type, raw)
        return self._scan_text(candidate, raw)

    def _scan_binary(self, mime_type: str, raw: bytes) -> ScanOutcome:
        signatures = self.rules.signatures_for(mime_type)
        if not any(raw.startswith(signature) for signature in signatures):
            return ScanOutcome.unsafe(f"File signature does not match declared type '{mime_type}'")

        for signature, label in self.rules.executable_signatures:
            if signature in raw:
                return ScanOutcome.unsafe(label)
        return ScanOutcome.safe()

    def _scan_text(self, candidate: UploadCandidate, raw: bytes) -> ScanOutcome:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ScanIndeterminateError(f"Content is not valid UTF-8: {e.reason}") from e

        for pattern, label in self.rules.threat_patterns:
            if pattern.search(text):
                return ScanOutcome.unsafe(label)

        # Declared or actual size far above the decoded length hides a payload.
        # Length is counted in UTF-16 code units, so astral characters count twice.
        decoded_length = len(text.encode("utf-16-le")) // 2
        if max(candidate.size_bytes, len(raw)) > PADDING_RATIO * decoded_length:
            return ScanOutcome.unsafe("File size inconsistent with decoded content")
        return ScanOutcome.safe()

    def _resolve_indeterminate(self, candidate: UploadCandidate, reason: str) -> ScanOutcome:
        size = candidate.size_bytes if isinstance(candidate.size_bytes, int) else self.scan_fail_open_max_bytes
        if size < self.scan_fail_open_max_bytes:
            self._logger.warning(
                "Content scan indeterminate, allowing small file",
                filename=candidate.name,
                size_bytes=size,
                reason=reason,
            )
            return ScanOutcome(is_safe=True, reason=reason, indeterminate=True)

        return ScanOutcome(
            is_safe=False,
            reason=f"Content could not be verified: {reason}",
            indeterminate=True,
        )

    # Naming and policy

    def generate_safe_filename(self, original_name: str, now_ms: Optional[int] = None) -> str:
        """
        Build a storage name of the form ``<base>_<millis><extension>``.

        The base keeps only ``[A-Za-z0-9_-]`` and is cut to 50 characters.
        The extension is kept as supplied. Two uploads of the same name in
        the same millisecond produce the same result.
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)

        dot = original_name.rfind(".")
        if dot == -1:
            base, extension = original_name, ""
        else:
            base, extension = original_name[:dot], original_name[dot:]

        safe_base = _UNSAFE_BASENAME_CHARS.sub("", base)[:SAFE_BASENAME_MAX_LENGTH]
        if not safe_base:
            safe_base = FALLBACK_BASENAME
        return f"{safe_base}_{now_ms}{extension}"

    def get_upload_policy(self) -> UploadPolicy:
        return UploadPolicy(
            max_file_size=self.max_file_size_bytes,
            allowed_types=tuple(self.rules.allowed_mime_types),
            max_files=self.max_files_per_batch,
        )


__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "DEFAULT_SCAN_FAIL_OPEN_MAX_BYTES",
    "DEFAULT_MAX_FILES_PER_BATCH",
    "UploadSecurityValidator",
]
