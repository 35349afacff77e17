# src/stepledger/core/logging.py
"""Structured logging setup for hosts that run stepledger.

Step executions log through ``structlog.get_logger(__name__)`` with the step
name and ids bound. Nothing here is required for that to work; a host that
already configures structlog keeps its own setup.

configure_logging() routes structlog events and plain ``logging`` records
through one ProcessorFormatter on a stdout handler, so both come out in the
same format (JSON lines or console text).
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from stepledger.core.config import LoggingSettings


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter adds these to every record it handles
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _renderers(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Point structlog and the stdlib root logger at one stdout handler.

    Args:
        json_output: JSON lines if True, console text otherwise.
        level: Root level name (DEBUG shows step lifecycle events).
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfigurable at runtime (tests switch renderers)
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_renderers(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


def configure_logging_from_settings(settings: "LoggingSettings") -> None:
    """Apply a validated LoggingSettings block."""
    configure_logging(json_output=settings.json_output, level=settings.level)
