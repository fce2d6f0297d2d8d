"""
Request header and method denylists.

These headers are not user settable. Browsers also refuse ``user-agent``;
it stays settable here.
"""

from typing import Optional

FORBIDDEN_REQUEST_HEADERS = frozenset([
    "accept-charset",
    "accept-encoding",
    "access-control-request-headers",
    "access-control-request-method",
    "connection",
    "content-length",
    "content-transfer-encoding",
    "cookie",
    "cookie2",
    "date",
    "expect",
    "host",
    "keep-alive",
    "origin",
    "referer",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "via",
])

FORBIDDEN_REQUEST_METHODS = frozenset([
    "TRACE",
    "TRACK",
    "CONNECT",
])

# Response headers never exposed through get_all_response_headers()
COOKIE_RESPONSE_HEADERS = frozenset(["set-cookie", "set-cookie2"])


def is_allowed_http_header(name: Optional[str], disable_check: bool = False) -> bool:
    """Check if the specified request header may be set.

    Args:
        name: Header name, any case
        disable_check: Skip the denylist entirely

    Returns:
        False if the header is forbidden, otherwise True
    """
    if disable_check:
        return True
    return bool(name) and name.lower() not in FORBIDDEN_REQUEST_HEADERS


def is_allowed_http_method(method: Optional[str]) -> bool:
    """Check if the specified request method is allowed (case-sensitive)."""
    return bool(method) and method not in FORBIDDEN_REQUEST_METHODS
