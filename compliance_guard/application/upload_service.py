"""Application layer orchestrator for guarded document uploads."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

import structlog

from compliance_guard.application.admission import Reservation
from compliance_guard.application.dependencies import UploadDependencies
from compliance_guard.domain.entities.security_event import (
    SecurityEventType,
    SecuritySeverity,
)
from compliance_guard.domain.entities.subscription import UsageDimension
from compliance_guard.domain.entities.upload import (
    UploadCandidate,
    UploadState,
    ValidationVerdict,
)
from compliance_guard.domain.exceptions import (
    AdmissionDeniedError,
    ContentUnsafeError,
    DomainException,
    InvalidFileError,
    UploadNotFoundError,
    ValidationFailedError,
)
from compliance_guard.domain.value_objects import UploadId

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one upload attempt."""

    upload_id: UploadId
    filename: str
    state: UploadState
    errors: Tuple[str, ...] = ()
    safe_filename: Optional[str] = None
    storage_path: Optional[str] = None
    public_url: Optional[str] = None
    scan_indeterminate: bool = False
    failure: Optional[DomainException] = field(default=None, repr=False, compare=False)

    @property
    def accepted(self) -> bool:
        return self.state == UploadState.ACCEPTED


@dataclass
class _TrackedUpload:
    upload_id: UploadId
    tenant_id: str
    filename: str
    state: UploadState = UploadState.PENDING


class UploadApplicationService:
    """Coordinates admission, validation, scanning and storage for uploads.

    Order per file: admission against the live document counter, structural
    validation, content scan, storage, then the counter increment. A file
    withdrawn while in flight is never stored or counted.

    Uploads are tracked while in flight. Once finished, only the most recent
    ``finished_history`` are kept for state lookups.
    """

    def __init__(self, dependencies: UploadDependencies, finished_history: int = 100) -> None:
        if finished_history <= 0:
            raise ValueError("finished_history must be positive")
        self._deps = dependencies
        self._uploads: Dict[str, _TrackedUpload] = {}
        self._finished: "OrderedDict[str, _TrackedUpload]" = OrderedDict()
        self._finished_history = finished_history

    @property
    def deps(self) -> UploadDependencies:
        return self._deps

    async def upload_document(
        self,
        tenant_id: str,
        user_id: Optional[str],
        candidate: UploadCandidate,
    ) -> UploadResult:
        """
        Run the full upload pipeline for one file.

        Raises:
            AdmissionDeniedError: If the tenant has no documents left
            ValidationFailedError: If the file fails structural validation
            ContentUnsafeError: If the content scan rejects the file
        """
        record = self._track(tenant_id, candidate)
        try:
            try:
                reservation = await self._deps.admission.reserve(tenant_id, UsageDimension.DOCUMENTS)
            except AdmissionDeniedError as e:
                result = self._deny(record, user_id, e)
            else:
                verdict = self._deps.validator.validate_file_upload(candidate)
                result = await self._process(record, user_id, candidate, verdict, reservation)
        finally:
            self._finish(record)

        if result.failure is not None:
            raise result.failure
        return result

    async def upload_documents_batch(
        self,
        tenant_id: str,
        user_id: Optional[str],
        candidates: Sequence[UploadCandidate],
    ) -> List[UploadResult]:
        """
        Upload several files, returning one result per file in submission order.

        Structurally invalid files are rejected without taking a document
        slot. The rest are admitted one after another against the live
        document counter, so a batch larger than the remaining allowance is
        admitted up to the limit and the rest are rejected. Scanning and
        storage of admitted files run concurrently.

        Raises:
            BatchTooLargeError: If the batch holds more files than allowed
        """
        candidates = list(candidates)
        verdicts = self._deps.validator.validate_batch(candidates)

        records = [self._track(tenant_id, candidate) for candidate in candidates]
        try:
            results = await self._run_batch(tenant_id, user_id, candidates, verdicts, records)
        finally:
            for record in records:
                self._finish(record)

        logger.info(
            "Batch upload completed",
            tenant_id=str(tenant_id),
            total=len(results),
            accepted=sum(1 for r in results if r.accepted),
        )
        return results

    async def _run_batch(
        self,
        tenant_id: str,
        user_id: Optional[str],
        candidates: List[UploadCandidate],
        verdicts: List[ValidationVerdict],
        records: List[_TrackedUpload],
    ) -> List[UploadResult]:
        admitted: List[Tuple[int, Reservation]] = []
        results: List[Optional[UploadResult]] = [None] * len(candidates)

        for index, record in enumerate(records):
            if not verdicts[index].is_valid:
                results[index] = await self._validate_scan_store(
                    record, user_id, candidates[index], verdicts[index]
                )
                continue
            try:
                reservation = await self._deps.admission.reserve(tenant_id, UsageDimension.DOCUMENTS)
            except AdmissionDeniedError as e:
                results[index] = self._deny(record, user_id, e)
            else:
                admitted.append((index, reservation))

        outcomes = await asyncio.gather(
            *(
                self._process(records[index], user_id, candidates[index], verdicts[index], reservation)
                for index, reservation in admitted
            ),
            return_exceptions=True,
        )

        for (index, _), outcome in zip(admitted, outcomes):
            if isinstance(outcome, BaseException):
                record = records[index]
                record.state = UploadState.REJECTED
                logger.error(
                    "Batch upload item failed",
                    upload_id=str(record.upload_id),
                    filename=record.filename,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                outcome = UploadResult(
                    upload_id=record.upload_id,
                    filename=record.filename,
                    state=UploadState.REJECTED,
                    errors=(f"Upload failed: {outcome}",),
                )
            results[index] = outcome

        return results

    def withdraw(self, upload_id: str, tenant_id: Optional[str] = None) -> bool:
        """
        Withdraw an in-flight upload. Returns False when it already finished.

        Raises:
            UploadNotFoundError: If the upload is unknown or belongs to another tenant
        """
        record = self._lookup(upload_id, tenant_id)
        if record.state.is_terminal:
            return False
        record.state = UploadState.WITHDRAWN
        logger.info("Upload withdrawn", upload_id=str(upload_id), filename=record.filename)
        return True

    def get_upload_state(self, upload_id: str, tenant_id: Optional[str] = None) -> UploadState:
        """
        Raises:
            UploadNotFoundError: If the upload is unknown or belongs to another tenant
        """
        return self._lookup(upload_id, tenant_id).state

    def get_in_flight_uploads(self, tenant_id: str) -> List[UploadId]:
        """Uploads of a tenant that have not reached a terminal state yet."""
        return [
            record.upload_id
            for record in self._uploads.values()
            if record.tenant_id == str(tenant_id) and not record.state.is_terminal
        ]

    def _lookup(self, upload_id: str, tenant_id: Optional[str]) -> _TrackedUpload:
        key = str(upload_id)
        record = self._uploads.get(key) or self._finished.get(key)
        if record is None or (tenant_id is not None and record.tenant_id != str(tenant_id)):
            raise UploadNotFoundError(f"Upload {upload_id} not found")
        return record

    def _finish(self, record: _TrackedUpload) -> None:
        """Stop tracking ``record`` as in flight and keep it in the bounded history."""
        if not record.state.is_terminal:
            record.state = UploadState.REJECTED
        key = str(record.upload_id)
        self._uploads.pop(key, None)
        self._finished[key] = record
        while len(self._finished) > self._finished_history:
            self._finished.popitem(last=False)

    def _track(self, tenant_id: str, candidate: UploadCandidate) -> _TrackedUpload:
        record = _TrackedUpload(
            upload_id=UploadId(uuid4()),
            tenant_id=str(tenant_id),
            filename=candidate.name,
        )
        self._uploads[str(record.upload_id)] = record
        return record

    def _advance(self, record: _TrackedUpload, state: UploadState) -> bool:
        """Move to ``state`` unless the upload was withdrawn meanwhile."""
        if record.state == UploadState.WITHDRAWN:
            return False
        record.state = state
        return True

    def _withdrawn(self, record: _TrackedUpload) -> UploadResult:
        logger.info("Ignoring result for withdrawn upload", upload_id=str(record.upload_id))
        return UploadResult(
            upload_id=record.upload_id,
            filename=record.filename,
            state=UploadState.WITHDRAWN,
        )

    def _deny(self, record: _TrackedUpload, user_id: Optional[str], error: AdmissionDeniedError) -> UploadResult:
        record.state = UploadState.REJECTED
        self._deps.security_log.log_event(
            SecurityEventType.ADMISSION_DENIED,
            SecuritySeverity.LOW,
            tenant_id=record.tenant_id,
            user_id=user_id,
            details={"filename": record.filename, "dimension": error.dimension},
        )
        return UploadResult(
            upload_id=record.upload_id,
            filename=record.filename,
            state=UploadState.REJECTED,
            errors=(str(error),),
            failure=error,
        )

    async def _process(
        self,
        record: _TrackedUpload,
        user_id: Optional[str],
        candidate: UploadCandidate,
        verdict: ValidationVerdict,
        reservation: Reservation,
    ) -> UploadResult:
        try:
            result = await self._validate_scan_store(record, user_id, candidate, verdict)
            if result.state == UploadState.ACCEPTED:
                try:
                    await self._deps.admission.commit(reservation)
                except Exception as e:
                    record.state = UploadState.REJECTED
                    logger.error(
                        "Usage commit failed, removing stored document",
                        upload_id=str(record.upload_id),
                        storage_path=result.storage_path,
                        error=str(e),
                    )
                    await self._deps.document_storage.delete_document(result.storage_path)
                    raise
            return result
        finally:
            await self._deps.admission.release(reservation)

    async def _validate_scan_store(
        self,
        record: _TrackedUpload,
        user_id: Optional[str],
        candidate: UploadCandidate,
        verdict: ValidationVerdict,
    ) -> UploadResult:
        log = logger.bind(upload_id=str(record.upload_id), tenant_id=record.tenant_id, filename=candidate.name)

        if not self._advance(record, UploadState.VALIDATING):
            return self._withdrawn(record)

        if not verdict.is_valid:
            record.state = UploadState.INVALID
            self._deps.security_log.log_event(
                SecurityEventType.VALIDATION_FAILED,
                SecuritySeverity.MEDIUM,
                tenant_id=record.tenant_id,
                user_id=user_id,
                details={"filename": candidate.name, "errors": list(verdict.errors)},
            )
            record.state = UploadState.REJECTED
            return UploadResult(
                upload_id=record.upload_id,
                filename=candidate.name,
                state=UploadState.REJECTED,
                errors=verdict.errors,
                failure=ValidationFailedError(candidate.name, verdict.errors),
            )

        self._advance(record, UploadState.VALID)
        if not self._advance(record, UploadState.SCANNING):
            return self._withdrawn(record)

        outcome = await self._deps.validator.inspect_content(candidate)

        # The scan may resolve after the user withdrew the file.
        if record.state == UploadState.WITHDRAWN:
            return self._withdrawn(record)

        if not outcome.is_safe:
            record.state = UploadState.UNSAFE
            self._deps.security_log.log_event(
                SecurityEventType.CONTENT_UNSAFE,
                SecuritySeverity.HIGH,
                tenant_id=record.tenant_id,
                user_id=user_id,
                details={
                    "filename": candidate.name,
                    "mime_type": candidate.mime_type,
                    "reason": outcome.reason,
                    "indeterminate": outcome.indeterminate,
                },
            )
            record.state = UploadState.REJECTED
            reason = outcome.reason or "Content failed security scan"
            return UploadResult(
                upload_id=record.upload_id,
                filename=candidate.name,
                state=UploadState.REJECTED,
                errors=(reason,),
                scan_indeterminate=outcome.indeterminate,
                failure=ContentUnsafeError(candidate.name, reason),
            )

        record.state = UploadState.SAFE
        try:
            content = await candidate.read()
        except OSError as e:
            record.state = UploadState.REJECTED
            log.warning("Upload content unreadable after scan", error=str(e))
            return UploadResult(
                upload_id=record.upload_id,
                filename=candidate.name,
                state=UploadState.REJECTED,
                errors=("File content could not be read",),
                scan_indeterminate=outcome.indeterminate,
                failure=InvalidFileError(candidate.name, "content could not be read"),
            )

        if record.state == UploadState.WITHDRAWN:
            return self._withdrawn(record)

        safe_filename = self._deps.validator.generate_safe_filename(candidate.name)
        try:
            stored = await self._deps.document_storage.store_document(
                content, safe_filename, record.tenant_id
            )
        except Exception:
            record.state = UploadState.REJECTED
            raise

        if record.state == UploadState.WITHDRAWN:
            await self._deps.document_storage.delete_document(stored.storage_path)
            return self._withdrawn(record)

        record.state = UploadState.ACCEPTED
        log.info(
            "Upload accepted",
            safe_filename=safe_filename,
            storage_path=stored.storage_path,
            size_bytes=len(content),
            scan_indeterminate=outcome.indeterminate,
        )
        return UploadResult(
            upload_id=record.upload_id,
            filename=candidate.name,
            state=UploadState.ACCEPTED,
            safe_filename=safe_filename,
            storage_path=stored.storage_path,
            public_url=stored.public_url,
            scan_indeterminate=outcome.indeterminate,
        )


__all__ = ["UploadApplicationService", "UploadResult"]
