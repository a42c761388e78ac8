"""
Application Exceptions
======================

Domain exceptions carrying a machine-readable code and an HTTP status,
translated into the standard error envelope by the API layer.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_RULE = "DUPLICATE_RULE"
    IMPORT_ERROR = "IMPORT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base class for all application errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(AppException):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "identifier": identifier},
        )


class ValidationError(AppException):
    """A rule (or other payload) failed semantic validation."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 422

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


class DuplicateRuleError(AppException):
    code = ErrorCode.DUPLICATE_RULE
    status_code = 409

    def __init__(self, rule_id: str):
        super().__init__(f"Rule already exists: {rule_id}", details={"rule_id": rule_id})


class RuleImportError(AppException):
    """The import payload could not be read at all (malformed JSON, wrong shape)."""

    code = ErrorCode.IMPORT_ERROR
    status_code = 400
