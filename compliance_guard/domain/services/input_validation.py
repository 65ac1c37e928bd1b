"""Generic text and document-name validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

DEFAULT_MAX_TEXT_LENGTH = 10000
MAX_DOCUMENT_NAME_LENGTH = 255
MAX_DOCUMENT_CONTENT_LENGTH = 500000

ALLOWED_HTML_TAGS = ("p", "br", "strong", "em", "u", "ol", "ul", "li")

_XSS_PATTERNS = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"<link", re.IGNORECASE),
)

_SCRIPT_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_ANY_TAG = re.compile(r"</?\s*([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass(frozen=True)
class InputValidationResult:
    is_valid: bool
    sanitized_value: str
    errors: Tuple[str, ...] = ()


def _strip_tags(value: str, allowed: Tuple[str, ...] = ()) -> str:
    value = _SCRIPT_BLOCK.sub("", value)

    def _replace(match: "re.Match[str]") -> str:
        tag = match.group(1).lower()
        if tag in allowed:
            closing = match.group(0).lstrip("<").lstrip().startswith("/")
            return f"</{tag}>" if closing else f"<{tag}>"
        return ""

    return _ANY_TAG.sub(_replace, value)


def validate_and_sanitize_text(
    value: str,
    max_length: int = DEFAULT_MAX_TEXT_LENGTH,
    allow_html: bool = False,
) -> InputValidationResult:
    """
    Validate free text and return a tag-stripped copy.

    With ``allow_html`` a small set of formatting tags survives (without
    attributes); otherwise all markup is removed.
    """
    if not value or not isinstance(value, str):
        return InputValidationResult(
            is_valid=False,
            sanitized_value="",
            errors=("Input must be a valid string",),
        )

    errors = []
    if len(value) > max_length:
        errors.append(f"Input exceeds maximum length of {max_length} characters")

    if not allow_html and any(pattern.search(value) for pattern in _XSS_PATTERNS):
        errors.append("Input contains potentially dangerous content")

    sanitized = _strip_tags(value, ALLOWED_HTML_TAGS if allow_html else ()).strip()

    return InputValidationResult(
        is_valid=not errors and len(sanitized) > 0,
        sanitized_value=sanitized,
        errors=tuple(errors),
    )


def validate_document_content(content: str) -> InputValidationResult:
    """Lenient validation for extracted document text."""
    return validate_and_sanitize_text(content, MAX_DOCUMENT_CONTENT_LENGTH, allow_html=False)


def validate_document_name(name: str) -> InputValidationResult:
    """Validate a user-supplied filename (length, markup, reserved characters)."""
    result = validate_and_sanitize_text(name, MAX_DOCUMENT_NAME_LENGTH, allow_html=False)

    if isinstance(name, str) and _INVALID_FILENAME_CHARS.search(name):
        return InputValidationResult(
            is_valid=False,
            sanitized_value=result.sanitized_value,
            errors=result.errors + ("Filename contains invalid characters",),
        )
    return result


__all__ = [
    "InputValidationResult",
    "validate_and_sanitize_text",
    "validate_document_content",
    "validate_document_name",
]
