"""
Logging setup for DocAnswer.

Records are written as one JSON object per line. Structured context goes in
``extra={"extra_fields": {...}}``; ``bind_run`` returns an adapter that adds a
run's identifiers to every record so a single question can be followed from
cache lookup to answer.

Environment: LOG_LEVEL, LOG_DIR, LOG_TO_FILE, LOG_TO_CONSOLE, LOG_CONSOLE_LEVEL.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Promoted to the top of each JSON record when present
CORRELATION_FIELDS = ("run_id", "session_id")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, correlation ids first."""

    def format(self, record: logging.LogRecord) -> str:
        extra_fields = getattr(record, "extra_fields", None)
        fields = dict(extra_fields) if isinstance(extra_fields, dict) else {}

        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }
        for key in CORRELATION_FIELDS:
            if fields.get(key) is not None:
                entry[key] = fields.pop(key)
        entry["message"] = record.getMessage()
        entry.update(fields)
        if record.levelno >= logging.WARNING:
            entry["where"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class RunLogAdapter(logging.LoggerAdapter):
    """Merges the bound run fields into each record's ``extra_fields``."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra") or {}
        fields = {**self.extra, **(extra.get("extra_fields") or {})}
        kwargs["extra"] = {**extra, "extra_fields": fields}
        return msg, kwargs


class LoggerConfig:
    """Process-wide handler setup, performed once on first use."""

    APP_FILE = "docanswer.log"
    ERROR_FILE = "docanswer-errors.log"
    MAX_BYTES = 5 * 1024 * 1024
    BACKUP_COUNT = 3

    _initialized = False
    _level_override: str | None = None

    @classmethod
    def set_level(cls, level: str) -> None:
        """Override LOG_LEVEL; applies immediately if logging is already set up."""
        cls._level_override = level.upper()
        if cls._initialized:
            logging.getLogger().setLevel(getattr(logging, cls._level_override, logging.INFO))

    @classmethod
    def _rotating(cls, path: Path, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=cls.MAX_BYTES, backupCount=cls.BACKUP_COUNT, encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(JsonFormatter())
        return handler

    @classmethod
    def setup_logging(cls) -> None:
        if cls._initialized:
            return

        level_name = cls._level_override or os.getenv("LOG_LEVEL", "INFO").upper()
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        to_file = _env_flag("LOG_TO_FILE", "true")
        to_console = _env_flag("LOG_TO_CONSOLE", "false")

        root = logging.getLogger()
        root.setLevel(getattr(logging, level_name, logging.INFO))

        if to_file:
            log_dir.mkdir(parents=True, exist_ok=True)
            root.addHandler(cls._rotating(log_dir / cls.APP_FILE, logging.DEBUG))
            root.addHandler(cls._rotating(log_dir / cls.ERROR_FILE, logging.ERROR))

        if to_console:
            console = logging.StreamHandler(sys.stderr)
            console_level = os.getenv("LOG_CONSOLE_LEVEL", "WARNING").upper()
            console.setLevel(getattr(logging, console_level, logging.WARNING))
            console.setFormatter(JsonFormatter())
            root.addHandler(console)

        # httpx logs every request at INFO; keep it to warnings
        logging.getLogger("httpx").setLevel(logging.WARNING)

        cls._initialized = True
        logging.getLogger(__name__).debug(
            "Logging configured",
            extra={
                "extra_fields": {
                    "log_level": level_name,
                    "log_dir": str(log_dir),
                    "file_logging": to_file,
                    "console_logging": to_console,
                }
            },
        )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, configuring handlers on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Search started", extra={"extra_fields": {"index": "docs"}})
    """
    LoggerConfig.setup_logging()
    return logging.getLogger(name)


def bind_run(logger: logging.Logger, **fields: Any) -> RunLogAdapter:
    """Adapter that stamps ``fields`` (run_id, session_id, ...) on every record."""
    return RunLogAdapter(logger, {k: v for k, v in fields.items() if v is not None})
