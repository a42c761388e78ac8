from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseSchema(BaseModel, Generic[T]):
    """Envelope for successful responses; failures use ``ErrorResponse``."""

    data: T
    message: str | None = Field(None, description="Short human-readable summary, e.g. 'Imported 3 rules'")
