"""
Logging setup for the lead capture core.

Storage components log through plain module loggers. Records are tagged
with the user, form and lead they concern:

- user_id comes from the user_context() block the capture service opens
  around each per-user operation, unless the call passes one itself;
- form_id and lead_id are passed by the storage components through
  ``extra={...}`` where a single form or lead is involved.

configure_logging() installs one formatter on the root logger: JSON lines
for aggregation, or a compact line for the console. Log files are always
JSON.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional

# User whose data the current operation touches
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

CONTEXT_FIELDS = ("user_id", "form_id", "lead_id")


@contextmanager
def user_context(user_id: Optional[str]) -> Iterator[None]:
    """Tag every record logged inside the block with user_id."""
    token = user_id_var.set(user_id)
    try:
        yield
    finally:
        user_id_var.reset(token)


def record_context(record: logging.LogRecord) -> Dict[str, str]:
    """Collect the user/form/lead ids attached to a record."""
    context = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            context[name] = value
    if "user_id" not in context and user_id_var.get():
        context["user_id"] = user_id_var.get()
    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data = {
            "timestamp": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Console line: time, level, logger, message, then the ids."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        message = f"{timestamp} {record.levelname:8s} [{record.name}] {record.getMessage()}"

        context = record_context(record)
        if context:
            message += " | " + " ".join(f"{k}={v}" for k, v in context.items())

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, console output is JSON
        log_file: Optional file that receives JSON lines as well
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter() if json_output else ReadableFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JsonFormatter())
        root_logger.addHandler(file_handler)

    # Connection chatter from the redis client
    logging.getLogger("redis").setLevel(logging.WARNING)
