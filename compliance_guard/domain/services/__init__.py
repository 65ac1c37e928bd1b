"""Pure domain services: admission control, upload validation and RBAC."""

from .input_validation import (
    InputValidationResult,
    validate_and_sanitize_text,
    validate_document_content,
    validate_document_name,
)
from .permission_checker import PermissionChecker
from .upload_rules import DEFAULT_RULES, UploadRuleSet
from .upload_security_validator import UploadSecurityValidator
from .usage_limit_guard import UsageLimitGuard

__all__ = [
    "InputValidationResult",
    "validate_and_sanitize_text",
    "validate_document_content",
    "validate_document_name",
    "PermissionChecker",
    "DEFAULT_RULES",
    "UploadRuleSet",
    "UploadSecurityValidator",
    "UsageLimitGuard",
]
