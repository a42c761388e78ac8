"""
Error Response Schemas
======================

The envelope every failed request returns, and the OpenAPI ``responses``
entries that document it on rule endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

_STATUS_DESCRIPTIONS = {
    400: "Rule file could not be read",
    404: "Rule not found",
    409: "A rule with this id already exists",
    422: "Rule or request failed validation",
}


class ErrorDetail(BaseModel):
    code: str = Field(..., description="NOT_FOUND, VALIDATION_ERROR, DUPLICATE_RULE, IMPORT_ERROR, ...")
    message: str
    request_id: str | None = Field(None, description="Echo of X-Request-ID")
    timestamp: datetime | None = None
    details: dict[str, Any] | None = Field(
        None, description="Extra context. Validation failures list messages under 'errors'."
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "VALIDATION_ERROR",
                "message": "Rule 3f2a9c is invalid",
                "request_id": "0b6f1c2e-5d4a-4e8f-9a7b-2c1d3e4f5a6b",
                "timestamp": "2024-01-15T10:30:00Z",
                "details": {"errors": ["Probability must be between 0 and 100"]},
            }
        }
    }


class ErrorResponse(BaseModel):
    error: ErrorDetail


def error_responses(*status_codes: int) -> dict[int | str, dict[str, Any]]:
    """Build a FastAPI ``responses=`` mapping for the given error statuses."""
    return {
        code: {"model": ErrorResponse, "description": _STATUS_DESCRIPTIONS.get(code, "Error")}
        for code in status_codes
    }
