"""Admin: read or change an agency's tier and model limit."""

from src.services.entitlements import change_agency_tier, get_agency_tier
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/agency-tier"

    def do_GET(self):
        self._dispatch(self._read)

    def do_PATCH(self):
        self._dispatch(self._change)

    def _read(self):
        actor = self._actor()
        return run_async(get_agency_tier(actor, self._query_params().get("agencyId")))

    def _change(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(change_agency_tier(
            actor,
            body.get("agencyId"),
            body.get("tier"),
            model_limit=body.get("modelLimit"),
            expires_at=body.get("expiresAt"),
        ))
