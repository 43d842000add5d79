"""Logging configuration for the Velvet functions, driven by LOG_* environment variables."""

import os
import logging
import sys
from pythonjsonlogger.json import JsonFormatter

from src.utils.config import AppConfig

AUDIT_LOGGER_NAME = "velvet.audit"

_QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "urllib3", "supabase", "postgrest", "gotrue")


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


class LoggingConfig:
    """Logging knobs; read once at import."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MESSAGE_CONTENT = _env_flag("LOG_MESSAGE_CONTENT", "true")
    LOG_MASK_SENSITIVE = _env_flag("LOG_MASK_SENSITIVE", "true")
    LOG_CORRELATION_ID_HEADER = os.environ.get("LOG_CORRELATION_ID_HEADER", "X-Correlation-ID")
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    _configured = False

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT == "json":
            return JsonFormatter(
                "%(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "name": "logger"},
                static_fields={"service": AppConfig.SERVICE_NAME},
            )
        return logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    @classmethod
    def setup_logging(cls, force: bool = False) -> None:
        """
        Install one stdout handler on the root logger.

        Every handler module calls this at import; after the first call it is
        a no-op unless `force` is set.
        """
        if cls._configured and not force:
            return

        level = getattr(logging, cls.LOG_LEVEL, logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.NOTSET)
        handler.setFormatter(cls.build_formatter())
        root_logger.addHandler(handler)

        # Audit records are kept even when LOG_LEVEL is raised above INFO
        logging.getLogger(AUDIT_LOGGER_NAME).setLevel(min(level, logging.INFO))

        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        cls._configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
