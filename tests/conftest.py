"""
Pytest configuration and shared fixtures.

Async tests run through the anyio pytest plugin on the asyncio backend only.
The ``http_server`` fixture starts a real HTTP server in a background thread
so the asynchronous and synchronous request paths can be exercised end to end.
"""

import gzip
import json
import socket
import threading
import zlib
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional

import pytest


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on asyncio only (trio is not installed)."""
    return "asyncio"


HELLO = b"Hello World"


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Dict[str, str]
    body: bytes = b""


@dataclass
class LocalServer:
    host: str
    port: int
    requests: List[RecordedRequest] = field(default_factory=list)

    def url(self, path: str = "/") -> str:
        return f"http://{self.host}:{self.port}{path}"

    def methods_for(self, path: str) -> List[str]:
        return [r.method for r in self.requests if r.path == path]

    def last(self, path: Optional[str] = None) -> RecordedRequest:
        matching = [r for r in self.requests if path is None or r.path == path]
        return matching[-1]


class _Handler(BaseHTTPRequestHandler):
    server_version = "TestServer/1.0"

    def log_message(self, format, *args):
        pass

    def _record(self) -> RecordedRequest:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        recorded = RecordedRequest(
            method=self.command,
            path=self.path,
            headers={k.lower(): v for k, v in self.headers.items()},
            body=body,
        )
        self.server.local.requests.append(recorded)
        return recorded

    def _reply(self, status: int, body: bytes = b"", headers: Optional[Dict[str, str]] = None):
        self.send_response(status)
        merged = {"Content-Type": "text/plain", "Content-Length": str(len(body))}
        merged.update(headers or {})
        for name, value in merged.items():
            self.send_header(name, value)
        self.end_headers()
        if self.command != "HEAD" and body:
            self.wfile.write(body)

    def _handle(self):
        request = self._record()
        path = request.path

        if path.startswith("/redirect/"):
            status = int(path.rsplit("/", 1)[1])
            self._reply(status, headers={"Location": self.server.local.url("/target")})
        elif path == "/relative-redirect":
            self._reply(302, headers={"Location": "/target"})
        elif path == "/gzip":
            self._reply(200, gzip.compress(HELLO), {"Content-Encoding": "gzip"})
        elif path == "/deflate":
            self._reply(200, zlib.compress(HELLO), {"Content-Encoding": "deflate"})
        elif path == "/cookies":
            self._reply(200, HELLO, {"Set-Cookie": "session=abc", "X-Custom": "value"})
        elif path == "/echo":
            payload = json.dumps({
                "method": request.method,
                "headers": request.headers,
                "body": request.body.decode("utf-8"),
            }).encode("utf-8")
            self._reply(200, payload, {"Content-Type": "application/json"})
        elif path == "/missing":
            self._reply(404, b"Not Found")
        else:
            self._reply(200, HELLO)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle
    do_HEAD = _handle
    do_PATCH = _handle


@pytest.fixture
def http_server():
    """Start a local HTTP server for the duration of a test."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.daemon_threads = True
    local = LocalServer(host="127.0.0.1", port=server.server_address[1])
    server.local = local

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield local
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def unused_port() -> int:
    """A TCP port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def hello_file(tmp_path):
    path = tmp_path / "hello-world.txt"
    path.write_bytes(HELLO)
    return path
