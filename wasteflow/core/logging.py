import datetime
import json
import logging
import sys
from typing import Any, Dict, Optional

from wasteflow.core.config import settings


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for log shipping.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for the driver console.
    """
    def format(self, record: logging.LogRecord) -> str:
        # 2025-10-27T10:00:00 [INFO] [wasteflow.sync] message
        timestamp = datetime.datetime.fromtimestamp(record.created).strftime("%Y-%m-%dT%H:%M:%S")
        line = f"{timestamp} [{record.levelname}] [{record.name}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configures the `wasteflow` logger tree.
    Falls back to Settings.log_level / Settings.log_format (WASTEFLOW_LOG_*).
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger("wasteflow")
    root.setLevel(level)
    if root.handlers:
        root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Returns a logger for a given component."""
    return logging.getLogger(f"wasteflow.{name}")
