import contextvars
import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from trackshield.core.config import settings

# Id of the Celery task that is currently executed by this worker thread
task_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task_id", default=None
)

_PACKAGE = "trackshield"


def get_task_id() -> str:
    return task_id_context.get() or "-"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for workers that ship logs to an aggregator."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "task_id": task_id_context.get(),
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ConsoleFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(
            "%(levelname)-8s | %(asctime)s | %(task_id)-36s | "
            "%(name)30s:%(lineno)-4d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.task_id = get_task_id()  # type: ignore

        original_name = record.name
        if original_name == _PACKAGE:
            record.name = "app"
        elif original_name.startswith(f"{_PACKAGE}."):
            record.name = original_name[len(_PACKAGE) + 1 :]
        try:
            return super().format(record)
        finally:
            # Other handlers may see the same record
            record.name = original_name


def setup_logging() -> None:
    """
    Configures the logging system for library users and the Celery worker.
    """
    formatter_cls = (
        "trackshield.core.logging_utils.JSONFormatter"
        if settings.LOG_FORMAT == "json"
        else "trackshield.core.logging_utils.ConsoleFormatter"
    )

    def _logger(level: str) -> dict[str, Any]:
        return {"handlers": ["default"], "level": level, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"()": formatter_cls}},
            "handlers": {
                "default": {
                    "formatter": "default",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "": {"handlers": ["default"], "level": settings.LOG_LEVEL},
                _PACKAGE: _logger(settings.LOG_LEVEL),
                # Statement echo and worker chatter
                "sqlalchemy.engine": _logger("WARNING"),
                "celery": _logger("INFO"),
            },
        }
    )
