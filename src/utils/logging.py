"""Structured logging: correlation ids, PII masking, operation timing and the admin audit trail."""

import hashlib
import inspect
import logging
import re
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from src.utils.logging_config import AUDIT_LOGGER_NAME, LoggingConfig, get_logger


_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_EMAIL_RE = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
_PHONE_RE = re.compile(r'\+?\d[\d\s().-]{7,}\d')
_SECRET_RE = re.compile(r'(?i)(api[_-]?key|token|secret|password|auth)[\s:=]+([A-Za-z0-9_-]{20,})')
_JWT_RE = re.compile(r'eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+')
_CONTROL_RE = re.compile(r'[\x00-\x1F\x7F]+')


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """
    Bind a correlation id for the duration of one request.

    A missing id (no X-Correlation-ID header) gets a fresh `req_<hex>` one.
    """
    token = _correlation_id_var.set(correlation_id or f"req_{uuid.uuid4().hex[:12]}")
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)


def mask_sensitive_data(text: str) -> str:
    """Redact e-mails, phone numbers, secrets and JWTs."""
    if not text or not LoggingConfig.LOG_MASK_SENSITIVE:
        return text
    text = _EMAIL_RE.sub('[REDACTED_EMAIL]', text)
    text = _PHONE_RE.sub('[REDACTED_PHONE]', text)
    text = _SECRET_RE.sub(r'\1=[REDACTED]', text)
    return _JWT_RE.sub('[REDACTED_JWT]', text)


def mask_user_id(user_id: str) -> str:
    """Shorten long user ids to a prefix plus a hash."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or not user_id or len(user_id) <= 12:
        return user_id
    digest = hashlib.sha256(user_id.encode()).hexdigest()[:8]
    return f"{user_id[:4]}...{digest}"


def sanitize_for_log(text: Optional[str], max_length: int = 500) -> Optional[str]:
    """Free text (admin notes) prepared for a log field, or None when content logging is off."""
    if not LoggingConfig.LOG_MESSAGE_CONTENT or not text:
        return None

    text = _CONTROL_RE.sub(' ', text)
    text = re.sub(r'\s+', ' ', text).strip()
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return mask_sensitive_data(text)


class StructuredLogger:
    """Logger wrapper whose keyword arguments become JSON fields."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        extra: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id
        extra.update(fields)
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=True, **fields)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


_audit_logger = get_structured_logger(AUDIT_LOGGER_NAME)


def audit_log(
    action: str,
    actor: Any,
    subject_type: str,
    subject_id: Optional[str],
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    success: bool = True,
    **fields: Any
) -> None:
    """
    Emit one audit record for an admin or system state change.

    Records carry the actor (masked), the subject, the before/after values
    and whether the change went through. Failed changes are logged at
    WARNING. This function never raises: a broken audit write is reported
    on the audit logger's own error path and the caller carries on.
    """
    try:
        record = {
            "audit": True,
            "action": action,
            "actor_id": mask_user_id(getattr(actor, "id", None) or "unknown"),
            "actor_role": getattr(getattr(actor, "role", None), "value", "unknown"),
            "actor_email": mask_sensitive_data(getattr(actor, "email", None) or ""),
            "subject_type": subject_type,
            "subject_id": subject_id,
            "before": before,
            "after": after,
            "success": success,
        }
        record.update(fields)

        if success:
            _audit_logger.info(f"Admin action: {action}", **record)
        else:
            _audit_logger.warning(f"Admin action failed: {action}", **record)
    except Exception as e:
        try:
            _audit_logger.logger.error("Failed to write audit record: %s", e)
        except Exception:
            pass


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """Log the duration of a block; slower than LOG_SLOW_OPERATION_THRESHOLD_MS also warns."""
    logger = logger or get_structured_logger(__name__)
    threshold = LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS
    started = time.perf_counter()
    logger.debug(f"Starting {operation_name}", operation=operation_name, **context)

    try:
        yield
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            f"Completed {operation_name}",
            operation=operation_name, processing_time_ms=elapsed_ms, **context
        )
        if elapsed_ms > threshold:
            logger.warning(
                f"Slow operation detected: {operation_name}",
                operation=operation_name, processing_time_ms=elapsed_ms,
                threshold_ms=threshold, **context
            )


def timed(operation_name: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator form of `log_timing` for plain and async functions."""
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        log = logger or get_structured_logger(func.__module__)

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with log_timing(op_name, logger=log):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with log_timing(op_name, logger=log):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator


def setup_logging() -> logging.Logger:
    """Configure the root handler once and return this module's logger."""
    LoggingConfig.setup_logging()
    return get_logger(__name__)
