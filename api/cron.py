"""
Scheduled maintenance endpoint (Vercel cron).

GET runs the expiry sweep (?action=check-subscriptions|reset-boosts|all).
POST handles single-record triggers from payment webhooks:
expire-subscription and upgrade-profile.
"""

from src.models.actor import SYSTEM_ACTOR
from src.services.cron_auth import verify_cron_request
from src.services.entitlements import apply_paid_upgrade
from src.services.expiry_sweeper import expire_subscription, run_sweep
from src.utils.errors import AuthenticationError, ValidationError
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):
    """Vercel serverless function handler for cron jobs."""

    endpoint = "cron"

    def do_GET(self):
        self._dispatch(self._sweep)

    def do_POST(self):
        self._dispatch(self._trigger)

    def _verify(self):
        if not verify_cron_request(self._authorization()):
            raise AuthenticationError("Unauthorized")

    def _sweep(self):
        self._verify()
        action = self._query_params().get("action")
        results = run_async(run_sweep(SYSTEM_ACTOR, action))
        return {"success": True, "results": results}

    def _trigger(self):
        self._verify()
        body = self._read_json()
        action = body.get("action")

        if action == "expire-subscription":
            return run_async(expire_subscription(
                SYSTEM_ACTOR, body.get("subscriptionId"), body.get("profileId")
            ))

        if action == "upgrade-profile":
            if not body.get("profileId") or not body.get("tier"):
                raise ValidationError("Missing profileId or tier")
            return run_async(apply_paid_upgrade(
                SYSTEM_ACTOR, body["profileId"], body["tier"], body.get("boosts")
            ))

        raise ValidationError("Invalid action")
