"""Error handling utilities."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable conflict codes callers can branch on."""
    ALREADY_BOOSTED = "ALREADY_BOOSTED"
    TIER_NOT_ALLOWED = "TIER_NOT_ALLOWED"
    NO_BOOSTS_REMAINING = "NO_BOOSTS_REMAINING"
    TIER_UNCHANGED = "TIER_UNCHANGED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


_CONFLICT_STATUS = {
    ErrorCode.ALREADY_BOOSTED: 400,
    ErrorCode.TIER_NOT_ALLOWED: 403,
    ErrorCode.NO_BOOSTS_REMAINING: 403,
}


class VelvetError(Exception):
    """Base exception for the Velvet backend."""
    status_code = 500
    code: Optional[str] = None


class ValidationError(VelvetError):
    """Malformed or missing input."""
    status_code = 400


class AuthenticationError(VelvetError):
    """Caller could not be authenticated."""
    status_code = 401


class AuthorizationError(VelvetError):
    """Caller is authenticated but not allowed to do this."""
    status_code = 403


class NotFoundError(VelvetError):
    """Referenced record does not exist."""
    status_code = 404


class ConflictError(VelvetError):
    """Operation conflicts with the record's current state."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.status_code = _CONFLICT_STATUS.get(self.code, 409)


class SupabaseError(VelvetError):
    """Supabase operation error."""
    pass


class ConfigurationError(VelvetError):
    """Required configuration is missing."""
    pass
