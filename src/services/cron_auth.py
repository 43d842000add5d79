"""Shared-secret verification for scheduled (cron) invocations."""

import os
import hmac
import logging
from typing import Optional
from src.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_cron_secret() -> str:
    """Get the cron secret from environment; it is mandatory."""
    secret = os.environ.get("CRON_SECRET", "").strip()
    if not secret:
        raise ConfigurationError("CRON_SECRET is not configured - cron endpoint protection is mandatory")
    return secret


def verify_cron_authorization(secret: str, authorization: Optional[str]) -> bool:
    """Constant-time check of `Authorization: Bearer <secret>`."""
    if not secret or not authorization:
        return False

    expected = f"Bearer {secret}"
    return hmac.compare_digest(expected.encode("utf-8"), authorization.strip().encode("utf-8"))


def verify_cron_request(authorization: Optional[str]) -> bool:
    """
    Verify a cron request.

    Raises ConfigurationError when no secret is configured, so a
    misconfigured deployment refuses every call instead of running open.
    """
    secret = get_cron_secret()
    result = verify_cron_authorization(secret, authorization)
    if not result:
        logger.warning(f"Cron authorization failed - has_header={bool(authorization)}")
    return result
