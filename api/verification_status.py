"""Latest verification application of a profile (owner or admin)."""

from src.services.verification_review import get_latest_verification
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "verification-status"

    def do_GET(self):
        self._dispatch(self._latest)

    def _latest(self):
        actor = self._actor()
        profile_id = self._query_params().get("profileId")
        return {"data": run_async(get_latest_verification(actor, profile_id))}
