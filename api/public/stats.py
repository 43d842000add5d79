"""Public landing-page statistics."""

from src.services.public_stats import get_public_stats
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "public/stats"

    def do_GET(self):
        self._dispatch(lambda: run_async(get_public_stats()))
