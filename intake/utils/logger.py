"""
Structured logging configuration for the guided-intake engine.

This module sets up structlog on top of the standard library logger, with
JSON or console rendering, and offers helpers that bind the context used by
the draft commit, scoring and API paths.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    include_timestamp: bool = True,
    include_process_id: bool = True,
    include_thread_id: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ('json' or 'console')
        include_timestamp: Whether to include timestamps in logs
        include_process_id: Whether to include process ID in logs
        include_thread_id: Whether to include thread ID in logs
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    callsite_parameters = set()
    if include_process_id:
        callsite_parameters.add(structlog.processors.CallsiteParameter.PROCESS)
    if include_thread_id:
        callsite_parameters.add(structlog.processors.CallsiteParameter.THREAD)
    if callsite_parameters:
        processors.append(
            structlog.processors.CallsiteParameterAdder(parameters=callsite_parameters)
        )

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]
    )

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.plain_traceback
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get a logger instance for this class."""
        return get_logger(self.__class__.__name__)


def log_api_request(
    method: str,
    path: str,
    status_code: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Create a logger for API request logging.

    Args:
        method: HTTP method
        path: Request path
        status_code: Response status code
        duration_ms: Request duration in milliseconds
        **kwargs: Additional context

    Returns:
        Logger with API request context
    """
    logger = get_logger("api_request")
    return logger.bind(
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs,
    )


def log_draft_commit(
    variant: Optional[str] = None,
    draft_id: Optional[str] = None,
    is_final: bool = False,
    **kwargs: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Create a logger for draft commit events.

    Args:
        variant: Intake variant name (full-application, funding-quiz, ...)
        draft_id: Draft identity, None before the first create
        is_final: Whether this commit is the final submission
        **kwargs: Additional commit context

    Returns:
        Logger with draft commit context
    """
    logger = get_logger("draft_commit")
    return logger.bind(
        variant=variant,
        draft_id=draft_id,
        is_final=is_final,
        **kwargs,
    )


def log_fundability_score(
    score: Optional[int] = None,
    rating: Optional[str] = None,
    **kwargs: Any,
) -> structlog.stdlib.BoundLogger:
    """Create a logger bound to a fundability scoring result."""
    logger = get_logger("fundability_score")
    return logger.bind(score=score, rating=rating, **kwargs)


# Initialize logging with default configuration
configure_logging()
