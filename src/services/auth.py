"""Caller resolution - turn a Supabase access token into an explicit Actor."""

from typing import Optional

from src.models.actor import Actor, Role
from src.services.supabase_client import SupabaseClient
from src.utils.errors import AuthenticationError, AuthorizationError
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def actor_from_user(user) -> Actor:
    """Build an Actor from a Supabase Auth user; role comes from user metadata."""
    metadata = getattr(user, "user_metadata", None) or {}
    try:
        role = Role(metadata.get("role") or Role.CUSTOMER)
    except ValueError:
        role = Role.CUSTOMER
    # The system role is never granted through a session
    if role == Role.SYSTEM:
        role = Role.CUSTOMER
    return Actor(id=str(user.id), role=role, email=getattr(user, "email", None))


async def resolve_actor(authorization: Optional[str]) -> Actor:
    """
    Authenticate a request.

    Raises AuthenticationError when the header is missing or the token is
    rejected by Supabase Auth.
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Unauthorized")

    async with SupabaseClient() as client:
        try:
            response = client.auth.get_user(token)
        except Exception as e:
            logger.warning("Access token rejected", error=str(e))
            raise AuthenticationError("Unauthorized")

    user = getattr(response, "user", None)
    if user is None:
        raise AuthenticationError("Unauthorized")

    actor = actor_from_user(user)
    logger.debug("Actor resolved", actor_id=mask_user_id(actor.id), actor_role=actor.role.value)
    return actor


def require_admin(actor: Optional[Actor]) -> Actor:
    if actor is None or not actor.is_admin:
        raise AuthorizationError("Unauthorized - Admin access required")
    return actor


def require_owner_or_admin(actor: Optional[Actor], owner_id: Optional[str]) -> Actor:
    """Allow the owning account, admins and system jobs."""
    if actor is None:
        raise AuthenticationError("Unauthorized")
    if actor.is_privileged:
        return actor
    if not owner_id or owner_id != actor.id:
        raise AuthorizationError("Forbidden")
    return actor
