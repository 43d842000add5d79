"""Anonymous engagement tracking: one view, contact click or search appearance."""

from src.services.engagement import track_event
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "track"

    def do_POST(self):
        self._dispatch(self._track)

    def _track(self):
        body = self._read_json()
        return run_async(track_event(body.get("profileId"), body.get("type")))
