"""
Pytest configuration and fixtures for requestor tests.
"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest
import responses as responses_lib

from requestor.core.client import Client
from requestor.core.logging.config import LoggingConfig


class EchoHandler(BaseHTTPRequestHandler):
    """
    Test server handler.

    /echo          -> JSON with method, args, headers, form_data, data
    /only/<METHOD> -> 200 for that method, 405 for any other
    /slow          -> like /echo, after a half-second pause
    /drip          -> five-byte body sent one byte every 0.3s
    """

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _handle(self):
        parts = urlsplit(self.path)
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""

        if parts.path == "/slow":
            time.sleep(0.5)

        if parts.path == "/drip":
            self._drip(b"xxxxx", 0.3)
            return

        if parts.path.startswith("/only/"):
            allowed = parts.path[len("/only/"):]
            self._send(200 if self.command == allowed else 405, b"")
            return

        headers = {}
        for key in set(self.headers.keys()):
            headers[key] = self.headers.get_all(key)

        content_type = self.headers.get("Content-Type", "")
        form_data = None
        data = None
        if body and content_type.startswith("application/x-www-form-urlencoded"):
            form_data = parse_qs(body.decode("ascii"))
        elif body:
            data = json.loads(body)

        payload = json.dumps({
            "method": self.command,
            "args": parse_qs(parts.query),
            "headers": headers,
            "form_data": form_data,
            "data": data,
            "body": body.decode("utf-8"),
        }).encode("utf-8")
        self._send(200, payload)

    def _send(self, status, payload):
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    def _drip(self, payload, interval):
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.flush()
        try:
            for byte in payload:
                time.sleep(interval)
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            # Client gave up
            self.close_connection = True

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _handle
    do_HEAD = do_OPTIONS = do_TRACE = do_PURGE = _handle


@pytest.fixture
def echo_server():
    """Local HTTP server; yields its base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def base_url():
    """Base URL for mocked requests."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def sleep():
    """Replacement for time.sleep that records delays."""
    return Mock()


@pytest.fixture
def client(sleep):
    """Client with a recorded sleep."""
    client = Client(sleep=sleep)
    yield client
    client.close()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """LoggingConfig writing JSON to a temp file."""
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(tmp_path / "requestor.log"),
    )
