"""
Centralized Logging

Architectural Intent:
- One place configures the ``cloudweave`` logger tree for the CLI
- Provisioning context passed through ``extra=`` (event, plan_id, step,
  step_index, node, partition, job_id) becomes first-class JSON keys, or a
  trailing ``[key=value ...]`` block in human-readable output
- Log levels follow the CLI flags (--verbose, --debug)
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Any, Optional

STRUCTURED_FIELDS = ("event", "plan_id", "step", "step_index", "node", "partition", "job_id")

HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def provisioning_context(record: logging.LogRecord) -> dict[str, Any]:
    """Structured fields attached to record, in STRUCTURED_FIELDS order."""
    context = {}
    for key in STRUCTURED_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(provisioning_context(record))
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class ContextFormatter(logging.Formatter):
    """Human-readable lines with the provisioning context appended.

    ``event`` is left out since the message already says what happened.
    """

    def __init__(self, fmt: Optional[str] = HUMAN_FORMAT) -> None:
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = provisioning_context(record)
        context.pop("event", None)
        if not context:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{suffix}]{sep}{tail}"


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure logging for the cloudweave package.

    Calling it again replaces the previous handler, so the CLI can be
    invoked repeatedly in one process.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, etc.)
        json_format: If True, use JSON structured output. Otherwise human-readable.
    """
    package_logger = logging.getLogger("cloudweave")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else ContextFormatter())
    package_logger.addHandler(handler)
