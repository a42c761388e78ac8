"""
Request Context
===============

Context variables shared between the API middleware and the logging layer.
"""

from contextvars import ContextVar

RequestId = str

_request_id: ContextVar[RequestId | None] = ContextVar("request_id", default=None)


def get_request_id() -> RequestId | None:
    return _request_id.get()


def set_request_id(request_id: RequestId | None) -> None:
    _request_id.set(request_id)
