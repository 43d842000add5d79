"""Admin: enable or disable a profile."""

from src.services.profile_admin import set_profile_disabled
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/profile-status"

    def do_PATCH(self):
        self._dispatch(self._toggle)

    def _toggle(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(set_profile_disabled(actor, body.get("profileId"), body.get("disabled")))
