"""Supabase client wrapper with async context manager support."""

import os
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL") or os.environ.get("NEXT_PUBLIC_SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        """Enter async context."""
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def _apply_filters(query, filters: dict[str, Any]):
    """Equality filters; a None value matches SQL NULL."""
    for column, value in filters.items():
        if value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    return query


def _first(result) -> Optional[dict]:
    return result.data[0] if result.data and len(result.data) > 0 else None


# Generic conditional writes
async def update_where(
    table: str,
    updates: dict,
    filters: dict[str, Any],
    or_filter: Optional[str] = None
) -> list[dict]:
    """
    Single-statement conditional update.

    Only rows matching every filter are written, so the returned list is
    empty when a concurrent writer changed the row first. This is the
    compare-and-swap primitive the services build on.
    """
    async with SupabaseClient() as client:
        try:
            query = _apply_filters(client.table(table).update(updates), filters)
            if or_filter:
                query = query.or_(or_filter)
            result = query.execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to update {table}: {e}")


# Profiles table operations
async def get_profile_row(profile_id: str) -> Optional[dict]:
    """Get profile by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").eq("id", profile_id).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get profile: {e}")


async def list_profile_rows() -> list[dict]:
    """Get all profiles, newest activity first."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").order("lastActive", desc=True).execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to list profiles: {e}")


async def reset_boosts_for_tier(tier: str, boosts_remaining: int) -> list[str]:
    """Set boosts_remaining for every profile on a tier; returns the IDs touched."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").update(
                {"boosts_remaining": boosts_remaining}
            ).eq("tier", tier).execute()
            return [row["id"] for row in (result.data or [])]
        except Exception as e:
            raise SupabaseError(f"Failed to reset boosts for tier {tier}: {e}")


# Agencies table operations
async def get_agency_row(agency_id: str) -> Optional[dict]:
    """Get agency by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("agencies").select("*").eq("id", agency_id).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get agency: {e}")


async def count_agency_profiles(agency_id: str) -> int:
    """Number of profiles linked to an agency (occupied model slots)."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("id", count="exact").eq("agencyId", agency_id).execute()
            if result.count is not None:
                return result.count
            return len(result.data or [])
        except Exception as e:
            raise SupabaseError(f"Failed to count agency profiles: {e}")


# Subscriptions table operations
async def get_expired_subscriptions(
    now_iso: str,
    limit: int,
    exclude_ids: Optional[list[str]] = None
) -> list[dict]:
    """Next batch of subscriptions still marked active whose end_date has passed."""
    async with SupabaseClient() as client:
        try:
            query = client.table("subscriptions").select(
                "id, user_id, profile_id, plan, status, end_date"
            ).eq("status", "active").lt("end_date", now_iso)
            if exclude_ids:
                query = query.not_.in_("id", exclude_ids)
            result = query.order("end_date").limit(limit).execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to fetch expired subscriptions: {e}")


async def get_subscription_row(subscription_id: str) -> Optional[dict]:
    async with SupabaseClient() as client:
        try:
            result = client.table("subscriptions").select("*").eq("id", subscription_id).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get subscription: {e}")


async def get_latest_subscription_for_user(user_id: str) -> Optional[dict]:
    """Most recently created subscription of an account."""
    async with SupabaseClient() as client:
        try:
            result = client.table("subscriptions").select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get subscription for user: {e}")


async def list_subscription_rows() -> list[dict]:
    """Get all subscriptions, newest first."""
    async with SupabaseClient() as client:
        try:
            result = client.table("subscriptions").select("*").order("created_at", desc=True).execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to list subscriptions: {e}")


# Verification applications table operations
async def get_verification_row(application_id: str) -> Optional[dict]:
    """Get verification application by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("verification_applications").select("*").eq("id", application_id).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get verification application: {e}")


async def get_latest_verification_row(profile_id: str) -> Optional[dict]:
    """Most recent verification application for a profile."""
    async with SupabaseClient() as client:
        try:
            result = client.table("verification_applications").select("*").eq(
                "profileId", profile_id
            ).order("createdAt", desc=True).limit(1).execute()
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get verification status: {e}")


# Sweep bookkeeping (idempotency markers)
async def claim_sweep_marker(kind: str, period: str) -> bool:
    """
    Record that a periodic job ran for a period.

    Returns False when the marker already exists (the job already ran).
    """
    async with SupabaseClient() as client:
        try:
            client.table("sweep_runs").insert({
                "kind": kind,
                "period": period
            }).execute()
            return True
        except Exception as e:
            # Duplicate key means the period was already claimed
            if "duplicate key" in str(e).lower():
                return False
            raise SupabaseError(f"Failed to claim sweep marker: {e}")


async def release_sweep_marker(kind: str, period: str) -> None:
    """Drop a marker so a failed periodic job can be retried."""
    async with SupabaseClient() as client:
        try:
            client.table("sweep_runs").delete().eq("kind", kind).eq("period", period).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to release sweep marker: {e}")


# Public aggregates
async def count_active_profiles(active_since_iso: str) -> int:
    """Enabled profiles whose last activity is unknown or at/after the cutoff."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("id", count="exact").not_.is_(
                "isDisabled", "true"
            ).or_(f"lastActive.is.null,lastActive.gte.{active_since_iso}").execute()
            if result.count is not None:
                return result.count
            return len(result.data or [])
        except Exception as e:
            raise SupabaseError(f"Failed to count active profiles: {e}")
