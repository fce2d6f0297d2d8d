"""
Redirect handling for the asynchronous request path.

Only 302, 303 and 307 are followed. 303 downgrades the method to GET while 302
and 307 keep it, which is narrower than browsers (they also downgrade 302 for
non-GET/HEAD requests).

There is no limit on the number of hops: a redirect loop is chased forever
unless the caller aborts the request.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urljoin

from .exceptions import MalformedURL, ProtocolNotSupported
from .models import TLSOptions, TransportOptions
from .urls import split_url

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset([302, 303, 307])


@dataclass
class RedirectHop:
    """The request to issue next when a response redirects."""

    url: str
    options: TransportOptions


def is_handled_redirect(status_code: int) -> bool:
    """Check if a response status triggers the redirect chase."""
    return status_code in REDIRECT_STATUSES


def redirect_method(status_code: int, method: str) -> str:
    """Method to use for the next hop."""
    if status_code == 303:
        return "GET"
    return method


def follow_redirect(status_code: int, options: TransportOptions, location: Optional[str],
                    base_url: str, headers: Optional[Dict[str, str]] = None,
                    tls: Optional[TLSOptions] = None) -> Optional[RedirectHop]:
    """Decide whether and how to re-issue a request after a 3xx response.

    Args:
        status_code: Status of the response just received
        options: Transport options of the request that produced it
        location: Value of the Location response header
        base_url: URL of the request that produced it, used for relative Locations
        headers: Request headers for the next hop (defaults to ``options.headers``)
        tls: TLS settings applied when the next hop is https

    Returns:
        The next hop, or None when the response is final

    Raises:
        ProtocolNotSupported: If Location points at an unsupported scheme
        MalformedURL: If Location cannot be parsed
    """
    if not is_handled_redirect(status_code) or not location:
        return None

    try:
        url = urljoin(base_url, location)
    except ValueError as e:
        raise MalformedURL(location, str(e)) from e
    target = split_url(url)
    if target.is_local:
        raise ProtocolNotSupported(target.scheme)

    next_headers = dict(options.headers if headers is None else headers)
    next_headers["host"] = target.host_header

    method = redirect_method(status_code, options.method)
    if method != options.method:
        # The body is dropped along with the method
        next_headers.pop("content-length", None)
        next_headers.pop("content-type", None)
    logger.debug(f"Following {status_code} redirect: {options.method} {base_url} -> {method} {url}")

    return RedirectHop(
        url=url,
        options=TransportOptions(
            host=target.host,
            port=target.port,
            path=target.path,
            method=method,
            headers=next_headers,
            secure=target.secure,
            tls=tls if target.secure else None,
        ),
    )
