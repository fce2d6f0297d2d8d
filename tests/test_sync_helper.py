"""
Tests for the synchronous request helper entry point.
"""

import base64
import gzip
import json

import httpx
import pytest

from xmlhttprequest.config import ENV_LOG_LEVEL
from xmlhttprequest.sync_helper import main
from xmlhttprequest.transport import HttpxTransport

OPTIONS = json.dumps({
    "host": "example.com",
    "port": 80,
    "path": "/data?x=1",
    "method": "POST",
    "headers": {"host": "example.com", "content-type": "text/plain"},
})


@pytest.fixture(autouse=True)
def quiet_helper(monkeypatch):
    monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)


def mock_transport(handler):
    return HttpxTransport(httpx.MockTransport(handler))


class TestSyncHelper:

    def test_success_document(self, capsys):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, headers={"X-Test": "1"}, content=b"created")

        status = main(["false", OPTIONS, "payload"], transport=mock_transport(handler))
        out = json.loads(capsys.readouterr().out)

        assert status == 0
        assert out["statusCode"] == 201
        assert out["responseHeaders"]["x-test"] == "1"
        assert base64.b64decode(out["responseBuffer"]) == b"created"
        assert out["responseText"] == "created"

        request = seen[0]
        assert request.method == "POST"
        assert request.url.host == "example.com"
        assert request.url.raw_path == b"/data?x=1"
        assert request.content == b"payload"

    def test_null_body(self, capsys):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        assert main(["false", OPTIONS, "null"], transport=mock_transport(handler)) == 0
        assert seen[0].content == b""

    def test_decodes_gzip(self, capsys):
        raw = gzip.compress(b"Hello World")

        def handler(request):
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=raw)

        main(["false", OPTIONS, "null"], transport=mock_transport(handler))
        out = json.loads(capsys.readouterr().out)

        assert out["responseText"] == "Hello World"
        assert base64.b64decode(out["responseBuffer"]) == raw

    def test_redirects_are_returned_as_is(self, capsys):
        def handler(request):
            return httpx.Response(302, headers={"Location": "/elsewhere"})

        main(["false", OPTIONS, "null"], transport=mock_transport(handler))
        out = json.loads(capsys.readouterr().out)

        assert out["statusCode"] == 302
        assert out["responseHeaders"]["location"] == "/elsewhere"

    def test_transport_failure(self, capsys):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        status = main(["false", OPTIONS, "null"], transport=mock_transport(handler))
        captured = capsys.readouterr()
        error = json.loads(captured.err)

        assert status == 1
        assert captured.out == ""
        assert error["name"] == "TransportError"
        assert error["message"] == "connection refused"
        assert "Traceback" in error["stack"]

    def test_bad_arguments(self, capsys):
        status = main([])
        error = json.loads(capsys.readouterr().err)

        assert status == 1
        assert error["name"] == "ValueError"

    def test_bad_options_json(self, capsys):
        status = main(["false", "{not json", "null"])
        error = json.loads(capsys.readouterr().err)

        assert status == 1
        assert error["name"] == "JSONDecodeError"
