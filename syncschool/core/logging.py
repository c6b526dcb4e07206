import json
import logging
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
import os

from syncschool.core.config import get_log_dir, get_logging_config


class CustomJsonFormatter(logging.Formatter):
    """JSON formatter for the file handlers"""
    def __init__(self, **kwargs):
        super().__init__()
        self.kwargs = kwargs

    def format(self, record):
        json_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            json_record["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        if hasattr(record, "duration"):
            json_record["duration_ms"] = record.duration

        for field in self.kwargs.get("extra_fields", []):
            if hasattr(record, field):
                json_record[field] = getattr(record, field)

        return json.dumps(json_record, default=str)


class LoggerFactory:
    """Creates loggers writing JSON to rotating files and plain text to the console"""

    @staticmethod
    def create_logger(name: str, log_dir: str = None, level: str = "INFO") -> logging.Logger:
        if log_dir is None:
            log_dir = get_log_dir()
        os.makedirs(log_dir, exist_ok=True)

        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level))
        logger.propagate = False

        if logger.handlers:
            logger.handlers.clear()

        handlers = {
            "app": RotatingFileHandler(
                os.path.join(log_dir, "app.log"),
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            ),
            "error": RotatingFileHandler(
                os.path.join(log_dir, "error.log"),
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
            ),
            "console": logging.StreamHandler(),
        }

        for handler_name, handler in handlers.items():
            if handler_name == "error":
                handler.setLevel(logging.ERROR)
            else:
                handler.setLevel(getattr(logging, level))

            if isinstance(handler, RotatingFileHandler):
                handler.setFormatter(
                    CustomJsonFormatter(extra_fields=["request_id", "user_id", "tenant_id", "path"])
                )
            else:
                handler.setFormatter(logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                ))

            logger.addHandler(handler)

        return logger

    @staticmethod
    def create_access_logger(name: str, log_dir: str = None) -> logging.Logger:
        if log_dir is None:
            log_dir = get_log_dir()

        access = logging.getLogger(name)
        access.setLevel(logging.INFO)
        access.propagate = False
        if access.handlers:
            access.handlers.clear()

        handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "access.log"),
            when="midnight",
            interval=1,
            backupCount=30,
        )
        handler.setFormatter(CustomJsonFormatter(
            extra_fields=["request_id", "method", "path", "status_code", "client_ip"]
        ))
        access.addHandler(handler)
        return access


_config = get_logging_config()
logger = LoggerFactory.create_logger("SyncSchoolLogger", log_dir=_config["log_dir"], level=_config["log_level"])
access_logger = LoggerFactory.create_access_logger("SyncSchoolAccess", log_dir=_config["log_dir"])
