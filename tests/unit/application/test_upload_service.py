"""
Unit tests for UploadApplicationService.

Runs the real guard, validator and in-memory stores with a recording
storage double, so admission, scanning and counting are exercised together.
"""

import asyncio
from uuid import uuid4

import pytest

from compliance_guard.application.admission import AdmissionController
from compliance_guard.application.dependencies import UploadDependencies
from compliance_guard.application.upload_service import UploadApplicationService
from compliance_guard.domain.entities.security_event import SecurityEventType, SecuritySeverity
from compliance_guard.domain.entities.subscription import UsageDimension
from compliance_guard.domain.entities.upload import UploadState
from compliance_guard.domain.exceptions import (
    AdmissionDeniedError,
    BatchTooLargeError,
    ContentUnsafeError,
    InvalidFileError,
    UploadNotFoundError,
    ValidationFailedError,
)
from compliance_guard.domain.services.upload_rules import TEXT_MIME
from compliance_guard.domain.services.upload_security_validator import UploadSecurityValidator
from compliance_guard.domain.services.usage_limit_guard import UsageLimitGuard
from compliance_guard.infrastructure.persistence.in_memory_stores import (
    InMemoryProfileStore,
    InMemoryUsageCounterStore,
)
from compliance_guard.infrastructure.security.security_event_log import SecurityEventLog
from tests.fixtures.subscription_fixtures import (
    SubscriptionTestBuilder,
    counters,
    pdf_candidate,
    text_candidate,
    unreadable_candidate,
)
from tests.mocks.mock_services import GatedValidator, MockDocumentStorage


@pytest.fixture
def tenant_id() -> str:
    return str(uuid4())


@pytest.fixture
def user_id() -> str:
    return str(uuid4())


@pytest.fixture
async def profile_store(tenant_id):
    store = InMemoryProfileStore()
    await store.save_profile(SubscriptionTestBuilder().with_tenant_id(tenant_id).build())
    return store


@pytest.fixture
def counter_store():
    return InMemoryUsageCounterStore()


@pytest.fixture
def storage():
    return MockDocumentStorage()


@pytest.fixture
def security_log():
    return SecurityEventLog()


@pytest.fixture
def admission(profile_store, counter_store):
    return AdmissionController(profile_store, counter_store, UsageLimitGuard())


def build_service(admission, storage, security_log, validator=None, **kwargs) -> UploadApplicationService:
    return UploadApplicationService(
        UploadDependencies(
            admission=admission,
            validator=validator or UploadSecurityValidator(),
            document_storage=storage,
            security_log=security_log,
        ),
        **kwargs,
    )


@pytest.fixture
def service(admission, storage, security_log):
    return build_service(admission, storage, security_log)


class TestSingleUpload:
    """Pipeline behavior for one file."""

    async def test_accepted_upload_is_stored_and_counted(
        self, service, storage, counter_store, tenant_id, user_id
    ):
        result = await service.upload_document(tenant_id, user_id, pdf_candidate("contract.pdf"))

        assert result.state == UploadState.ACCEPTED
        assert result.safe_filename.startswith("contract_")
        assert result.storage_path == f"{tenant_id}/{result.safe_filename}"
        assert result.public_url.startswith("https://files.test/")
        assert len(storage.stored) == 1
        assert storage.stored[0][2] == tenant_id
        assert (await counter_store.get_counters(tenant_id)).documents == 1
        assert service.get_upload_state(str(result.upload_id)) == UploadState.ACCEPTED

    async def test_admission_denied_stores_nothing(
        self, service, storage, counter_store, security_log, tenant_id, user_id
    ):
        await counter_store.set_counters(tenant_id, counters(documents=10))

        with pytest.raises(AdmissionDeniedError) as exc_info:
            await service.upload_document(tenant_id, user_id, pdf_candidate())

        assert exc_info.value.dimension == "documents"
        assert exc_info.value.limit == 10
        assert exc_info.value.current == 10
        assert storage.stored == []
        events = security_log.get_events(SecurityEventType.ADMISSION_DENIED)
        assert len(events) == 1
        assert events[0].severity == SecuritySeverity.LOW

    async def test_validation_failure_does_not_count(
        self, service, storage, counter_store, security_log, tenant_id, user_id
    ):
        candidate = pdf_candidate("resume.exe")

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.upload_document(tenant_id, user_id, candidate)

        assert "File extension '.exe' is not allowed for security reasons" in exc_info.value.errors
        assert storage.stored == []
        assert (await counter_store.get_counters(tenant_id)).documents == 0
        assert len(security_log.get_events(SecurityEventType.VALIDATION_FAILED)) == 1

    async def test_unsafe_content_is_logged_as_alert(
        self, service, storage, counter_store, security_log, tenant_id, user_id
    ):
        candidate = text_candidate("notes.txt", b"<script>steal()</script>")

        with pytest.raises(ContentUnsafeError) as exc_info:
            await service.upload_document(tenant_id, user_id, candidate)

        assert exc_info.value.reason == "Script tag detected"
        assert storage.stored == []
        assert (await counter_store.get_counters(tenant_id)).documents == 0
        alerts = security_log.get_alerts()
        assert [a.event_type for a in alerts] == [SecurityEventType.CONTENT_UNSAFE]
        assert alerts[0].details["filename"] == "notes.txt"
        assert alerts[0].user_id == user_id

    async def test_unreadable_small_file_fails_at_storage_read(
        self, service, storage, admission, tenant_id, user_id
    ):
        candidate = unreadable_candidate("notes.txt", TEXT_MIME, 512)

        with pytest.raises(InvalidFileError):
            await service.upload_document(tenant_id, user_id, candidate)

        assert storage.stored == []
        assert admission.pending(tenant_id, "documents") == 0

    async def test_storage_failure_releases_reservation(
        self, admission, counter_store, security_log, tenant_id, user_id
    ):
        service = build_service(admission, MockDocumentStorage(fail_with=OSError("disk full")), security_log)

        with pytest.raises(OSError, match="disk full"):
            await service.upload_document(tenant_id, user_id, pdf_candidate())

        assert admission.pending(tenant_id, "documents") == 0
        assert (await counter_store.get_counters(tenant_id)).documents == 0

    async def test_failed_commit_settles_reservation_once(
        self, profile_store, storage, security_log, tenant_id, user_id
    ):
        class FailingIncrementStore(InMemoryUsageCounterStore):
            async def increment(self, tenant_id, dimension, amount=1):
                raise ConnectionError("counter backend unavailable")

        admission = AdmissionController(profile_store, FailingIncrementStore(), UsageLimitGuard())
        service = build_service(admission, storage, security_log)
        other = await admission.reserve(tenant_id, UsageDimension.DOCUMENTS)

        with pytest.raises(ConnectionError):
            await service.upload_document(tenant_id, user_id, pdf_candidate())

        assert admission.pending(tenant_id, "documents") == 1
        [(_, safe_filename, _)] = storage.stored
        assert storage.deleted == [f"{tenant_id}/{safe_filename}"]

        await admission.release(other)
        assert admission.pending(tenant_id, "documents") == 0

    async def test_finished_uploads_are_pruned(self, admission, storage, security_log, tenant_id, user_id):
        service = build_service(admission, storage, security_log, finished_history=3)

        results = [
            await service.upload_document(tenant_id, user_id, pdf_candidate(f"doc{i}.pdf"))
            for i in range(5)
        ]

        assert service.get_in_flight_uploads(tenant_id) == []
        for result in results[:2]:
            with pytest.raises(UploadNotFoundError):
                service.get_upload_state(str(result.upload_id))
        assert [service.get_upload_state(str(r.upload_id)) for r in results[2:]] == [UploadState.ACCEPTED] * 3

    async def test_concurrent_uploads_cannot_exceed_limit(
        self, service, storage, counter_store, tenant_id, user_id
    ):
        await counter_store.set_counters(tenant_id, counters(documents=9))

        outcomes = await asyncio.gather(
            service.upload_document(tenant_id, user_id, pdf_candidate("a.pdf")),
            service.upload_document(tenant_id, user_id, pdf_candidate("b.pdf")),
            return_exceptions=True,
        )

        denied = [o for o in outcomes if isinstance(o, AdmissionDeniedError)]
        assert len(denied) == 1
        assert len(storage.stored) == 1
        assert (await counter_store.get_counters(tenant_id)).documents == 10


class TestWithdraw:
    """Withdrawal of uploads still in flight."""

    async def test_withdraw_during_scan(
        self, admission, storage, counter_store, security_log, tenant_id, user_id
    ):
        validator = GatedValidator(UploadSecurityValidator())
        service = build_service(admission, storage, security_log, validator=validator)

        task = asyncio.create_task(service.upload_document(tenant_id, user_id, pdf_candidate()))
        await validator.scan_started.wait()

        [upload_id] = service.get_in_flight_uploads(tenant_id)
        assert service.get_upload_state(str(upload_id)) == UploadState.SCANNING
        assert service.withdraw(str(upload_id), tenant_id) is True

        validator.release.set()
        result = await task

        assert result.state == UploadState.WITHDRAWN
        assert storage.stored == []
        assert (await counter_store.get_counters(tenant_id)).documents == 0
        assert admission.pending(tenant_id, "documents") == 0
        assert service.get_in_flight_uploads(tenant_id) == []

    async def test_withdraw_finished_upload_is_noop(self, service, tenant_id, user_id):
        result = await service.upload_document(tenant_id, user_id, pdf_candidate())

        assert service.withdraw(str(result.upload_id)) is False
        assert service.get_upload_state(str(result.upload_id)) == UploadState.ACCEPTED

    def test_withdraw_unknown_upload(self, service):
        with pytest.raises(UploadNotFoundError):
            service.withdraw(str(uuid4()))

    async def test_withdraw_other_tenants_upload(self, service, tenant_id, user_id):
        result = await service.upload_document(tenant_id, user_id, pdf_candidate())

        with pytest.raises(UploadNotFoundError):
            service.get_upload_state(str(result.upload_id), tenant_id=str(uuid4()))


class TestBatchUpload:
    """Per-file outcomes for batches."""

    async def test_batch_admitted_up_to_remaining_allowance(
        self, service, storage, counter_store, tenant_id, user_id
    ):
        await counter_store.set_counters(tenant_id, counters(documents=8))
        candidates = [pdf_candidate("one.pdf"), pdf_candidate("two.pdf"), pdf_candidate("three.pdf")]

        results = await service.upload_documents_batch(tenant_id, user_id, candidates)

        assert [r.filename for r in results] == ["one.pdf", "two.pdf", "three.pdf"]
        assert [r.state for r in results] == [
            UploadState.ACCEPTED,
            UploadState.ACCEPTED,
            UploadState.REJECTED,
        ]
        assert "limit for documents" in results[2].errors[0]
        assert len(storage.stored) == 2
        assert (await counter_store.get_counters(tenant_id)).documents == 10

    async def test_invalid_file_takes_no_document_slot(
        self, service, storage, counter_store, admission, tenant_id, user_id
    ):
        await counter_store.set_counters(tenant_id, counters(documents=9))

        results = await service.upload_documents_batch(
            tenant_id, user_id, [pdf_candidate("bad.exe"), pdf_candidate("good.pdf")]
        )

        assert [r.state for r in results] == [UploadState.REJECTED, UploadState.ACCEPTED]
        assert "File extension '.exe' is not allowed for security reasons" in results[0].errors
        assert [s[1].split("_")[0] for s in storage.stored] == ["good"]
        assert (await counter_store.get_counters(tenant_id)).documents == 10
        assert admission.pending(tenant_id, "documents") == 0

    async def test_mixed_batch(self, service, counter_store, tenant_id, user_id):
        candidates = [
            pdf_candidate("good.pdf"),
            pdf_candidate("bad.exe"),
            text_candidate("evil.txt", b"javascript:alert(1)"),
        ]

        results = await service.upload_documents_batch(tenant_id, user_id, candidates)

        assert [r.accepted for r in results] == [True, False, False]
        assert results[2].errors == ("JavaScript URL scheme detected",)
        assert (await counter_store.get_counters(tenant_id)).documents == 1

    async def test_batch_too_large(self, service, storage, tenant_id, user_id):
        with pytest.raises(BatchTooLargeError):
            await service.upload_documents_batch(
                tenant_id, user_id, [pdf_candidate(f"f{i}.pdf") for i in range(11)]
            )

        assert storage.stored == []

    async def test_storage_failure_rejects_item(self, admission, security_log, counter_store, tenant_id, user_id):
        service = build_service(admission, MockDocumentStorage(fail_with=OSError("disk full")), security_log)

        results = await service.upload_documents_batch(tenant_id, user_id, [pdf_candidate()])

        assert results[0].state == UploadState.REJECTED
        assert results[0].errors == ("Upload failed: disk full",)
        assert admission.pending(tenant_id, "documents") == 0
        assert (await counter_store.get_counters(tenant_id)).documents == 0
