"""Admin: fraud analysis of one profile (?profileId) or all profiles (?minLevel)."""

from src.services.profile_admin import get_fraud_analysis, list_fraud_analyses
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/fraud"

    def do_GET(self):
        self._dispatch(self._analyze)

    def _analyze(self):
        actor = self._actor()
        params = self._query_params()
        if params.get("profileId"):
            return run_async(get_fraud_analysis(actor, params["profileId"]))
        analyses = run_async(list_fraud_analyses(actor, params.get("minLevel")))
        return {"profiles": analyses, "count": len(analyses)}
