"""Shared plumbing for the Vercel `handler` classes under api/."""

import asyncio
import json
from http.server import BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlparse

from src.models.actor import Actor
from src.services.auth import resolve_actor
from src.utils.errors import ValidationError, VelvetError
from src.utils.logging import correlation_context, get_structured_logger, setup_logging
from src.utils.logging_config import LoggingConfig

setup_logging()
logger = get_structured_logger(__name__)


def run_async(coro):
    """Run a coroutine to completion from a synchronous handler."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def error_body(error: VelvetError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": str(error)}
    if error.code:
        body["code"] = getattr(error.code, "value", error.code)
    return body


class JsonRequestHandler(BaseHTTPRequestHandler):
    """BaseHTTPRequestHandler with JSON in/out and error mapping."""

    endpoint = "api"

    def _send_json(self, status: int, payload: Any) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def _read_json(self) -> Dict[str, Any]:
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
        if not raw_body:
            return {}
        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    def _query_params(self) -> Dict[str, str]:
        query = urlparse(self.path or "").query
        return {key: values[0] for key, values in parse_qs(query).items() if values}

    def _authorization(self) -> Optional[str]:
        return self.headers.get('Authorization') or self.headers.get('authorization')

    def _actor(self) -> Actor:
        return run_async(resolve_actor(self._authorization()))

    def _dispatch(self, operation: Callable[[], Any], status: int = 200) -> None:
        """Run `operation` and write its result; map failures to JSON errors."""
        header = LoggingConfig.LOG_CORRELATION_ID_HEADER
        with correlation_context(self.headers.get(header)):
            try:
                result = operation()
            except VelvetError as e:
                logger.info(
                    "Request rejected",
                    endpoint=self.endpoint,
                    status_code=e.status_code,
                    error_code=getattr(e.code, "value", e.code),
                    error=str(e),
                )
                self._send_json(e.status_code, error_body(e))
                return
            except Exception as e:
                logger.exception("Unhandled error", endpoint=self.endpoint, error=str(e))
                self._send_json(500, {"error": "Internal server error"})
                return
            self._send_json(status, result)
