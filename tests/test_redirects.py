"""
Tests for the redirect handler.
"""

import pytest

from xmlhttprequest.exceptions import ProtocolNotSupported
from xmlhttprequest.models import TLSOptions, TransportOptions
from xmlhttprequest.redirects import follow_redirect, is_handled_redirect, redirect_method


def make_options(method="POST", headers=None):
    return TransportOptions(
        host="localhost",
        port=8000,
        path="/redirectingResource",
        method=method,
        headers=headers if headers is not None else {"host": "localhost:8000", "accept": "*/*"},
    )


class TestRedirectMethod:

    @pytest.mark.parametrize("status,method,expected", [
        (302, "GET", "GET"),
        (302, "POST", "POST"),
        (303, "POST", "GET"),
        (303, "PUT", "GET"),
        (307, "POST", "POST"),
        (307, "DELETE", "DELETE"),
    ])
    def test_method_rules(self, status, method, expected):
        assert redirect_method(status, method) == expected

    @pytest.mark.parametrize("status", [301, 308, 200, 304, 404])
    def test_unhandled_statuses(self, status):
        assert not is_handled_redirect(status)


class TestFollowRedirect:

    def test_absolute_location(self):
        hop = follow_redirect(307, make_options(), "http://example.com:9000/next?x=1",
                              "http://localhost:8000/redirectingResource")

        assert hop.url == "http://example.com:9000/next?x=1"
        assert hop.options.host == "example.com"
        assert hop.options.port == 9000
        assert hop.options.path == "/next?x=1"
        assert hop.options.method == "POST"
        assert hop.options.headers["host"] == "example.com:9000"

    def test_relative_location_resolved_against_request_url(self):
        hop = follow_redirect(302, make_options("GET"), "/target",
                              "http://localhost:8000/redirectingResource")

        assert hop.url == "http://localhost:8000/target"
        assert hop.options.path == "/target"
        assert hop.options.method == "GET"

    def test_303_drops_body_headers(self):
        options = make_options(headers={
            "host": "localhost:8000",
            "content-length": "4",
            "content-type": "text/plain;charset=UTF-8",
        })
        hop = follow_redirect(303, options, "/target", "http://localhost:8000/r")

        assert hop.options.method == "GET"
        assert "content-length" not in hop.options.headers
        assert "content-type" not in hop.options.headers

    def test_307_keeps_body_headers(self):
        options = make_options(headers={"host": "localhost:8000", "content-length": "4"})
        hop = follow_redirect(307, options, "/target", "http://localhost:8000/r")

        assert hop.options.headers["content-length"] == "4"

    def test_https_target_uses_tls_settings(self):
        tls = TLSOptions(ca="/etc/ca.pem")
        hop = follow_redirect(302, make_options("GET"), "https://secure.example.com/",
                              "http://localhost:8000/r", tls=tls)

        assert hop.options.secure
        assert hop.options.port == 443
        assert hop.options.tls is tls
        assert hop.options.headers["host"] == "secure.example.com"

    def test_final_response_returns_none(self):
        assert follow_redirect(200, make_options(), "/target", "http://localhost:8000/") is None

    def test_missing_location_returns_none(self):
        assert follow_redirect(302, make_options(), None, "http://localhost:8000/") is None

    def test_original_options_untouched(self):
        options = make_options()
        follow_redirect(303, options, "http://other/", "http://localhost:8000/")

        assert options.method == "POST"
        assert options.headers["host"] == "localhost:8000"

    def test_file_target_rejected(self):
        with pytest.raises(ProtocolNotSupported):
            follow_redirect(302, make_options(), "file:///etc/passwd", "http://localhost:8000/")
