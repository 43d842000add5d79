"""Admin: inspect a profile's boost state or apply an override."""

from src.services.boost_scheduler import admin_boost_action, get_admin_boost_view
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/profile-boost"

    def do_GET(self):
        self._dispatch(self._read)

    def do_PATCH(self):
        self._dispatch(self._apply)

    def _read(self):
        actor = self._actor()
        return run_async(get_admin_boost_view(actor, self._query_params().get("profileId")))

    def _apply(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(admin_boost_action(actor, body.get("profileId"), body.get("action")))
