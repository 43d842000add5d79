"""Self-service boost endpoint: status (GET) and activation (POST)."""

from src.services.boost_scheduler import activate_boost, get_boost_status
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):
    """Vercel serverless function handler for profile boosts."""

    endpoint = "boost"

    def do_GET(self):
        """Boost status for ?profileId=..."""
        self._dispatch(self._status)

    def do_POST(self):
        """Activate a 24-hour boost for {"profileId": ...}."""
        self._dispatch(self._activate)

    def _status(self):
        actor = self._actor()
        profile_id = self._query_params().get("profileId")
        return run_async(get_boost_status(actor, profile_id))

    def _activate(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(activate_boost(actor, body.get("profileId")))
