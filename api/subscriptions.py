"""
Subscriptions of the signed-in account.

GET returns the caller's latest subscription; ?all=true lists every
subscription (admin only). POST handles {"action": "cancel"} and
{"action": "verify-payment"}.
"""

from src.services.subscriptions import (
    cancel_subscription,
    get_own_subscription,
    list_subscriptions,
    verify_payment,
)
from src.utils.errors import ValidationError
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):
    """Vercel serverless function handler for subscriptions."""

    endpoint = "subscriptions"

    def do_GET(self):
        self._dispatch(self._read)

    def do_POST(self):
        self._dispatch(self._action)

    def _read(self):
        actor = self._actor()
        if self._query_params().get("all") == "true":
            return run_async(list_subscriptions(actor))
        return run_async(get_own_subscription(actor))

    def _action(self):
        actor = self._actor()
        body = self._read_json()
        action = body.get("action")

        if action == "cancel":
            return run_async(cancel_subscription(actor, body.get("subscriptionId")))

        if action == "verify-payment":
            return run_async(verify_payment(actor))

        raise ValidationError("Invalid action")
