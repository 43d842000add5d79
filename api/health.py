"""Liveness check for the Velvet functions; touches no backing service."""

from http.server import BaseHTTPRequestHandler
import json

from src.utils.config import AppConfig


class handler(BaseHTTPRequestHandler):
    """GET or POST /api/health."""

    def _write_status(self):
        payload = {"status": "ok", "service": AppConfig.SERVICE_NAME}
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def do_GET(self):
        self._write_status()

    def do_POST(self):
        self._write_status()
