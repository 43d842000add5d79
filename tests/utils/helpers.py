"""Test helper functions."""

import json
from http.client import HTTPMessage
from io import BytesIO
from typing import Any, Dict, Optional, Tuple
from unittest.mock import Mock


def build_handler(
    handler_cls,
    method: str = "GET",
    path: str = "/",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None
):
    """
    Instantiate a Vercel `handler` class without a socket.

    send_response/send_header/end_headers are mocks; the JSON body is
    written to an in-memory wfile.
    """
    raw = b""
    if body is not None:
        raw = (body if isinstance(body, str) else json.dumps(body)).encode('utf-8')

    message = HTTPMessage()
    for key, value in (headers or {}).items():
        message[key] = value
    if raw:
        message['Content-Length'] = str(len(raw))

    h = handler_cls.__new__(handler_cls)
    h.command = method
    h.path = path
    h.headers = message
    h.rfile = BytesIO(raw)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def call_handler(
    handler_cls,
    method: str = "GET",
    path: str = "/",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None
) -> Tuple[int, Any]:
    """Run one request through a handler; returns (status, parsed JSON body)."""
    h = build_handler(handler_cls, method=method, path=path, body=body, headers=headers)
    getattr(h, f"do_{method}")()
    status = h.send_response.call_args[0][0]
    h.wfile.seek(0)
    return status, json.loads(h.wfile.read().decode('utf-8'))


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
