"""
Application logging setup.

``setup_logging(app)`` wires ``app.logger`` to console and rotating file
handlers using either JSON lines or plain text, driven by the ``LOG_*``
settings in ``config/monitoring.py``.
"""

from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler

from flask import Flask, has_request_context, request

# Attributes present on every LogRecord; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    )
)

TEXT_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, including structured ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "lineno": record.lineno,
        }
        if has_request_context():
            log_record["path"] = request.path
            log_record["method"] = request.method

        if record.exc_info:
            log_record["exc"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_record:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            log_record[key] = value

        return json.dumps(log_record)


def _build_formatter(app: Flask) -> logging.Formatter:
    if str(app.config.get("LOG_FORMAT", "json")).lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app: Flask) -> None:
    """
    Configure ``app.logger`` handlers from the app config.

    Safe to call more than once; previously installed handlers are replaced.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = _build_formatter(app)
    logger = app.logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(level)

    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "quality_monitor.log"),
            maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024)),
            backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 10)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.debug("Logging configured (level=%s, format=%s)", logging.getLevelName(level), app.config.get("LOG_FORMAT"))
