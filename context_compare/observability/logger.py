import json
import logging
import os
import sys
from datetime import datetime, timezone

from context_compare.config import LOG_DIR, LOG_LEVEL


# LogRecord attributes that never go into the JSON payload as extras
_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno",
    "pathname", "filename", "module", "exc_info",
    "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "message",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Custom `extra` fields are merged into the payload; values that are not
    JSON serializable are rendered with str().
    """

    def format(self, record: logging.LogRecord) -> str:

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():

            if key.startswith("_") or key in _RESERVED_ATTRS:
                continue

            # Never overwrite the fixed fields
            if key in log_data:
                log_data[f"extra_{key}"] = value
            else:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = LOG_LEVEL, log_dir: str = LOG_DIR):

    os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"))
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    # Silence noisy libs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_request_start(logger, request_id, endpoint, **kwargs):

    logger.info(
        f"{endpoint}_started",
        extra={"request_id": request_id, "endpoint": endpoint, **kwargs},
    )


def log_request_complete(logger, request_id, endpoint, latency_seconds, **kwargs):

    logger.info(
        f"{endpoint}_completed",
        extra={
            "request_id": request_id,
            "endpoint": endpoint,
            "latency_seconds": round(latency_seconds, 3),
            **kwargs,
        },
    )


def log_request_error(logger, request_id, endpoint, error, **kwargs):

    logger.error(
        f"{endpoint}_failed",
        extra={
            "request_id": request_id,
            "endpoint": endpoint,
            "error": str(error),
            "error_type": type(error).__name__,
            **kwargs,
        },
        exc_info=True,
    )
