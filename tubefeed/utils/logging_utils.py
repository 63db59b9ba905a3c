"""Structured JSON logging utilities.

Log collectors split entries on newlines, so a multi-line traceback ends up
as many entries. These helpers keep one exception in one JSON line.
"""

import json
import logging
import traceback
from typing import Any


def log_exception_json(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    severity: str = "ERROR",
    **extra_fields: Any
) -> None:
    """
    Log an exception and its stack trace as a single JSON entry.

    Args:
        logger: Logger instance to use
        message: Human-readable error message
        exc: The exception to log
        severity: Log severity (ERROR, WARNING, etc.)
        **extra_fields: Additional fields to include in the entry

    Example:
        log_exception_json(
            logger,
            "Ingestion step failed",
            exc,
            page_token="CAUQAA",
        )
    """
    stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    log_entry = {
        "severity": severity,
        "message": f"{message}: {exc!s}",
        "stack_trace": stack_trace,
        "exception": {
            "type": type(exc).__name__,
            "message": str(exc),
        },
        **extra_fields
    }

    level = logging.getLevelName(severity.upper())
    if not isinstance(level, int):
        level = logging.ERROR
    logger.log(level, json.dumps(log_entry, default=str))
