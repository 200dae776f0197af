# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for flowgate.

Lifecycle events (`workflow.definition.created`, `workflow.dsl.rejected`, ...)
go through `log_event` so their fields land as JSON keys; publishes also go
to the `flowgate.audit` logger.
"""

import logging
import json
import sys
from datetime import datetime, timezone, date
from typing import Optional, Any
from pathlib import Path


_RESERVED_RECORD_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `extra` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Simple text formatter for human-readable logs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None
) -> logging.Logger:
    """Logger with a single stdout handler, plus a file handler when `log_file` is set."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    level: str = "INFO",
    **kwargs: Any
) -> None:
    """Log `event` as the message with `kwargs` as structured fields (avoid LogRecord attribute names)."""
    log_func = getattr(logger, level.lower())
    log_func(event, extra=kwargs)


def get_service_logger(service_name: str) -> logging.Logger:
    """`flowgate.service.<name>` logger at the configured level and format."""
    from flowgate.core.config import get_config
    config = get_config()
    return get_logger(
        f"flowgate.service.{service_name}",
        log_level=config.log_level,
        log_format=config.log_format
    )


def get_audit_logger() -> logging.Logger:
    """
    Get logger for the publish audit trail.

    Audit logs go to a separate dated file when `audit_to_file` is enabled.
    """
    from flowgate.core.config import get_config
    config = get_config()

    log_file = None
    if config.audit_to_file:
        log_file = config.logs_dir / f"audit-{date.today().isoformat()}.log"
    return get_logger(
        "flowgate.audit",
        log_level="INFO",
        log_format="json",
        log_file=log_file
    )
