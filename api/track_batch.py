"""Search impressions for a page of results (first 50 profile IDs)."""

from src.services.engagement import track_search_batch
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "track-batch"

    def do_POST(self):
        self._dispatch(self._track_batch)

    def _track_batch(self):
        body = self._read_json()
        return run_async(track_search_batch(body.get("profileIds"), body.get("type", "search")))
