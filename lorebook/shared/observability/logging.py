"""
Structured Logging
==================

One ``configure_logging`` call sets up output for the API server, the
``lorebook-rules`` CLI and applications embedding the engine. Stdlib loggers
are rendered by ``structlog``, so ``logging.getLogger(__name__)`` is all a
module needs.

Environment variables
~~~~~~~~~~~~~~~~~~~~~
- ``LOG_LEVEL``: minimum severity, wins over the ``log_level`` argument.
- ``LOG_FORMAT``: ``json`` for JSON lines, anything else for console output.
- ``LOREBOOK_RULE_TRACE``: when truthy, the activation pipeline logs every
  per-rule decision (probability rolls, ceiling trims, budget drops) at
  DEBUG regardless of the root level.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

from lorebook.shared.context import get_request_id

# Logger that carries per-rule activation decisions
RULE_TRACE_LOGGER = "lorebook.core.activation"

_QUIET_LIBRARIES = ("httpx", "httpcore", "uvicorn.access", "uvicorn.error", "multipart", "tiktoken")

_TRUTHY = {"1", "true", "yes", "on"}


def _request_id_processor(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    request_id = get_request_id()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _resolve_level(log_level: str) -> int:
    name = os.getenv("LOG_LEVEL", log_level).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _pre_chain(json_format: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _request_id_processor,
    ]
    if json_format:
        processors.append(structlog.processors.format_exc_info)
    return processors


def _renderer(json_format: bool) -> structlog.types.Processor:
    if json_format:
        # Rule content and keywords are often non-ASCII
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: str = "INFO",
    json_format: bool | None = None,
    rule_trace: bool | None = None,
) -> None:
    """Install a single structlog-rendered handler on the root logger.

    Safe to call repeatedly; earlier handlers are replaced. ``json_format``
    and ``rule_trace`` fall back to ``LOG_FORMAT`` and
    ``LOREBOOK_RULE_TRACE`` when left as ``None``.
    """
    level = _resolve_level(log_level)
    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "").lower() == "json"
    if rule_trace is None:
        rule_trace = os.getenv("LOREBOOK_RULE_TRACE", "").lower() in _TRUTHY

    pre_chain = _pre_chain(json_format)
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(json_format)],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(max(logging.WARNING, level))

    # Records propagate to the root handler without a second level check
    logging.getLogger(RULE_TRACE_LOGGER).setLevel(logging.DEBUG if rule_trace else logging.NOTSET)
