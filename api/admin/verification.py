"""Admin: approve or reject a verification application."""

from src.services.verification_review import review_application
from src.utils.http import JsonRequestHandler, run_async


class handler(JsonRequestHandler):

    endpoint = "admin/verification"

    def do_PATCH(self):
        self._dispatch(self._review)

    def _review(self):
        actor = self._actor()
        body = self._read_json()
        return run_async(review_application(
            actor, body.get("applicationId"), body.get("decision"), notes=body.get("notes")
        ))
