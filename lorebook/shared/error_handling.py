"""
Shared Error Handling
=====================

Utilities for consistent exception mapping across the application.
"""

import logging
from typing import Any

from lorebook.shared.exceptions import (
    AppException,
    DuplicateRuleError,
    NotFoundError,
    RuleImportError,
    ValidationError,
)
from lorebook.shared.messages import ERROR_MESSAGES

logger = logging.getLogger(__name__)


def map_exception_to_error_data(e: Exception) -> dict[str, Any]:
    """
    Map an exception to a structured error data dictionary.

    Handles:
    - NotFoundError
    - ValidationError (carries the collected rule errors)
    - DuplicateRuleError
    - RuleImportError

    Returns:
        dict: {
            "code": str,       # Error code (e.g., 'not_found', 'validation')
            "message": str,    # User-friendly message
            "errors": list,    # Collected validation messages (may be empty)
            "details": str,    # Raw exception string (optional/debug)
        }
    """
    error_code = "processing_error"
    message = ERROR_MESSAGES.get("default", "An unexpected error occurred.")
    errors: list[str] = []

    if isinstance(e, NotFoundError):
        error_code = "not_found"
        message = ERROR_MESSAGES.get("not_found", message)

    elif isinstance(e, ValidationError):
        error_code = "validation"
        message = ERROR_MESSAGES.get("validation", message)
        errors = list(e.errors)

    elif isinstance(e, DuplicateRuleError):
        error_code = "duplicate"
        message = ERROR_MESSAGES.get("duplicate", message)

    elif isinstance(e, RuleImportError):
        error_code = "import_error"
        message = e.message

    elif isinstance(e, AppException):
        message = e.message

    return {"code": error_code, "message": message, "errors": errors, "details": str(e)}
