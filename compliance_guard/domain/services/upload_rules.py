"""
Rule tables for upload validation and content scanning.

The validator holds no rules of its own: MIME allowlist, dangerous extensions,
magic-byte signatures, foreign executable signatures and threat patterns all
live here as data and are injected, so crafted rule sets can be tested
without touching validator logic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Pattern, Tuple

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"
CSV_MIME = "text/csv"
XLS_MIME = "application/vnd.ms-excel"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PDF_SIGNATURE = b"%PDF"
ZIP_LOCAL_HEADER = b"PK\x03\x04"
OLE_HEADER = b"\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1"

DEFAULT_ALLOWED_MIME_TYPES: Tuple[str, ...] = (
    PDF_MIME,
    DOC_MIME,
    DOCX_MIME,
    TEXT_MIME,
    CSV_MIME,
    XLS_MIME,
    XLSX_MIME,
)

DEFAULT_DANGEROUS_EXTENSIONS: FrozenSet[str] = frozenset({
    ".exe", ".bat", ".cmd", ".com", ".pif", ".scr",
    ".vbs", ".js", ".jar", ".php", ".asp", ".jsp",
})

# Leading bytes each binary container must start with
DEFAULT_MAGIC_SIGNATURES: Dict[str, Tuple[bytes, ...]] = {
    PDF_MIME: (PDF_SIGNATURE,),
    DOC_MIME: (OLE_HEADER,),
    XLS_MIME: (OLE_HEADER,),
    DOCX_MIME: (ZIP_LOCAL_HEADER,),
    XLSX_MIME: (ZIP_LOCAL_HEADER,),
}

# Executable formats that must not appear anywhere inside a document
DEFAULT_EXECUTABLE_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"MZ\x90\x00", "Embedded Windows executable detected"),
    (b"\x7fELF", "Embedded Linux executable detected"),
    (b"\xFE\xED\xFA\xCE", "Embedded Mach-O executable detected"),
    (b"\xFE\xED\xFA\xCF", "Embedded Mach-O executable detected"),
    (b"\xCE\xFA\xED\xFE", "Embedded Mach-O executable detected"),
    (b"\xCF\xFA\xED\xFE", "Embedded Mach-O executable detected"),
    (b"\xCA\xFE\xBA\xBE", "Embedded universal binary detected"),
)

_THREAT_PATTERN_SOURCES: Tuple[Tuple[str, str], ...] = (
    (r"<script", "Script tag detected"),
    (r"javascript\s*:", "JavaScript URL scheme detected"),
    (r"vbscript\s*:", "VBScript URL scheme detected"),
    (r"\bon(?:load|click|error|mouseover|focus|submit)\s*=|<[^>]+\son\w+\s*=", "Inline event handler detected"),
    (r"<\s*(?:iframe|object|embed|form)\b", "Embedded frame or form element detected"),
    (r"data:text/html", "HTML data URI detected"),
    (r"\beval\s*\(", "eval() call detected"),
    (r"document\.write", "document.write call detected"),
    (r"window\.location", "window.location manipulation detected"),
    (r"%3Cscript", "URL-encoded script tag detected"),
    (r"\.\.[/\\]", "Directory traversal pattern detected"),
    (r"\x00", "NULL byte detected"),
    (r"<!ENTITY|<!DOCTYPE[^>]*\bSYSTEM\b", "XML external entity detected"),
    (r"\$\{[^}]*\}", "Template interpolation detected"),
    (r"\b(?:exec|system)\s*\(", "Command execution call detected"),
)

DEFAULT_THREAT_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = tuple(
    (re.compile(source, re.IGNORECASE), label) for source, label in _THREAT_PATTERN_SOURCES
)


@dataclass(frozen=True)
class UploadRuleSet:
    """Complete rule configuration for the upload security validator."""

    allowed_mime_types: Tuple[str, ...] = DEFAULT_ALLOWED_MIME_TYPES
    dangerous_extensions: FrozenSet[str] = DEFAULT_DANGEROUS_EXTENSIONS
    magic_signatures: Dict[str, Tuple[bytes, ...]] = field(
        default_factory=lambda: dict(DEFAULT_MAGIC_SIGNATURES)
    )
    executable_signatures: Tuple[Tuple[bytes, str], ...] = DEFAULT_EXECUTABLE_SIGNATURES
    threat_patterns: Tuple[Tuple[Pattern[str], str], ...] = DEFAULT_THREAT_PATTERNS

    def is_allowed_mime_type(self, mime_type: str) -> bool:
        """Exact allowlist match; parameters or wildcards are not accepted."""
        return mime_type in self.allowed_mime_types

    def is_dangerous_extension(self, extension: str) -> bool:
        return extension.lower() in self.dangerous_extensions

    def is_binary_type(self, mime_type: str) -> bool:
        """Binary containers are verified by signature, not decoded as text."""
        return mime_type in self.magic_signatures

    def signatures_for(self, mime_type: str) -> Tuple[bytes, ...]:
        return self.magic_signatures.get(mime_type, ())


DEFAULT_RULES = UploadRuleSet()


__all__ = [
    "PDF_MIME",
    "DOC_MIME",
    "DOCX_MIME",
    "TEXT_MIME",
    "CSV_MIME",
    "XLS_MIME",
    "XLSX_MIME",
    "PDF_SIGNATURE",
    "ZIP_LOCAL_HEADER",
    "OLE_HEADER",
    "DEFAULT_ALLOWED_MIME_TYPES",
    "DEFAULT_DANGEROUS_EXTENSIONS",
    "DEFAULT_MAGIC_SIGNATURES",
    "DEFAULT_EXECUTABLE_SIGNATURES",
    "DEFAULT_THREAT_PATTERNS",
    "UploadRuleSet",
    "DEFAULT_RULES",
]
