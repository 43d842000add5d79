"""Admin: read or change a profile's tier."""

from src.services.entitlements import change_profile_tier, get_profile_tier
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/profile-tier"

    def do_GET(self):
        self._dispatch(self._read)

    def do_PATCH(self):
        self._dispatch(self._change)

    def _read(self):
        actor = self._actor()
        return run_async(get_profile_tier(actor, self._query_params().get("profileId")))

    def _change(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(change_profile_tier(
            actor,
            body.get("profileId"),
            body.get("tier"),
            expires_at=body.get("expiresAt"),
            notes=body.get("notes"),
        ))
