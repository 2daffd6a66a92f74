# usercrud/core/logging/formatters.py
"""
Custom logging formatters.

  - JsonFormatter: one JSON object per line for log collectors. Carries the
    observability fields (service, env, version, request_id) and every key
    passed through `extra={...}`.
  - ColorFormatter: compact ANSI-coloured lines for a developer terminal.

builder.make_dict_config() picks between them from LOG_FORMAT.
"""

import json
import logging
from logging import LogRecord
from typing import Any

from usercrud.utils.logging import DEFAULT_PROJECT_NAME, get_project_version

# Attributes every LogRecord has; anything else on the record came from `extra`
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction (usually from dictConfig):
      - env: environment name, e.g. "production"
      - service: logical service name
      - datefmt: passed through to logging.Formatter.formatTime

    Values that json cannot encode are emitted as their str(); format() never
    raises because of an odd `extra` value.
    """

    def __init__(self, *, env: str | None = None, service: str = DEFAULT_PROJECT_NAME, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service
        self.version = get_project_version()

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": self.version,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_record or key.startswith("_"):
                continue
            log_record[key] = value

        # default=str: UUIDs, datetimes and the like become strings
        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development formatter: TIMESTAMP | LEVEL | LOGGER | REQUEST_ID | MESSAGE,
    with only the level coloured. Tracebacks follow on the next lines.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",   # bold cyan on white
        "INFO": "\033[32m",         # green
        "WARNING": "\033[33m",      # yellow
        "ERROR": "\033[31m",        # red
        "CRITICAL": "\033[1;41m",   # bold on red
        "RESET": "\033[0m",
    }

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        reset = self.COLOR_CODES["RESET"]

        line = (
            f"{self.formatTime(record, self.datefmt)} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'request_id', '-'):<10} | "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            line = line + "\n" + self.formatException(record.exc_info)
        return line
