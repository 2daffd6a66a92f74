# usercrud/core/logging/builder.py
"""
Build and apply the application's logging configuration.

    make_dict_config(settings)  -> dictConfig mapping (pure, testable)
    setup_logging(settings)     -> applies it

| Component  | Entries                                                               |
| ---------- | --------------------------------------------------------------------- |
| formatters | "standard" (colour when LOG_FORMAT=text), "json"                      |
| filters    | "request_id", "redact"                                                |
| handlers   | "console" + ("file", "error_file") or "error_console"                 |
| loggers    | root, uvicorn.error, uvicorn.access, sqlalchemy.engine                |

Files are written only when LOG_TO_STDOUT is false and LOG_DIR is set;
otherwise errors get a second, JSON-formatted stream handler.
"""

import logging
import logging.config
from pathlib import Path

from usercrud.config.settings import Settings
from usercrud.utils.logging import get_project_name

from .filters import RequestIdFilter, RedactFilter
from .formatters import JsonFormatter, ColorFormatter
from .handlers import (
    get_console_handler,
    get_error_console_handler,
    get_file_handler,
    get_error_file_handler,
)

STANDARD_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": STANDARD_FORMAT,
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}
    if _writes_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers),
                "level": settings.LOG_LEVEL,
            },
            "uvicorn.error": {
                "handlers": list(handlers),
                "level": settings.LOG_LEVEL,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            # SQL statements are DEBUG on this logger; off unless asked for
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the configuration. Safe to call more than once (tests do):
    dictConfig replaces the previous handlers.
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))

    # Covers handlers attached outside dictConfig (e.g. pytest caplog) for root records
    root = logging.getLogger()
    if not any(isinstance(f, RequestIdFilter) for f in root.filters):
        root.addFilter(RequestIdFilter())
