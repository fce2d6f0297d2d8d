"""
Transport interface and its httpx implementation.

The transport issues exactly one HTTP request and streams the response back; it
never follows redirects and never decodes the body, both of which are the
request executor's job.
"""

import logging
import ssl
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncContextManager, AsyncIterator, Dict, Optional, Union

import httpx

from .exceptions import TransportError
from .models import TLSOptions, TransportOptions

logger = logging.getLogger(__name__)

# Only advertise the encodings the response decoder understands
DEFAULT_ACCEPT_ENCODING = "gzip, deflate"


@dataclass
class TransportResponse:
    """Status line and headers of a streamed response, plus its body chunks."""

    status_code: int
    reason_phrase: str
    headers: Dict[str, str] = field(default_factory=dict)
    chunks: Optional[AsyncIterator[bytes]] = None

    async def aiter_chunks(self) -> AsyncIterator[bytes]:
        if self.chunks is None:
            return
        async for chunk in self.chunks:
            yield chunk


class Transport(ABC):
    """Abstract base class for the network collaborator."""

    @abstractmethod
    def stream(self, options: TransportOptions,
               body: Optional[bytes] = None) -> AsyncContextManager[TransportResponse]:
        """
        Issue a request and stream back the response.

        Args:
            options: Target, method, headers and TLS settings
            body: Optional request body

        Returns:
            Async context manager yielding the response once its headers arrived

        Raises:
            TransportError: On socket, DNS, TLS or stream failures
        """
        pass


def create_ssl_context(tls: Optional[TLSOptions]) -> Union[ssl.SSLContext, bool]:
    """Build the ``verify`` argument for httpx from TLS options.

    ``ca`` may be a path or PEM text. ``pfx`` is accepted as a PEM bundle holding
    both certificate and key, since the ssl module cannot read PKCS#12.
    """
    if tls is None:
        return True

    if tls.ca and tls.ca.lstrip().startswith("-----BEGIN"):
        context = ssl.create_default_context(cadata=tls.ca)
    elif tls.ca:
        context = ssl.create_default_context(cafile=tls.ca)
    else:
        context = ssl.create_default_context()

    if not tls.reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if tls.cert:
        context.load_cert_chain(tls.cert, keyfile=tls.key, password=tls.passphrase)
    elif tls.pfx:
        context.load_cert_chain(tls.pfx, password=tls.passphrase)

    if tls.ciphers:
        context.set_ciphers(tls.ciphers)

    return context


def flatten_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Lowercase header names, joining repeated headers with a comma."""
    result: Dict[str, str] = {}
    for name, value in headers.multi_items():
        name = name.lower()
        if name in result:
            result[name] = f"{result[name]}, {value}"
        else:
            result[name] = value
    return result


class HttpxTransport(Transport):
    """Transport backed by ``httpx.AsyncClient``.

    A client is created per request because httpx binds TLS settings to the
    client. ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    @asynccontextmanager
    async def stream(self, options: TransportOptions,
                     body: Optional[bytes] = None) -> AsyncIterator[TransportResponse]:
        try:
            verify = create_ssl_context(options.tls) if options.secure else True
        except (ssl.SSLError, OSError) as e:
            raise TransportError(f"Invalid TLS configuration: {e}", e) from e

        logger.debug(f"Transport request: {options.method} {options.url}")

        try:
            async with httpx.AsyncClient(
                verify=verify,
                transport=self._transport,
                follow_redirects=False,
                timeout=None,
                headers={"accept-encoding": DEFAULT_ACCEPT_ENCODING},
            ) as client:
                async with client.stream(
                    options.method,
                    options.url,
                    headers=options.headers,
                    content=body,
                ) as response:
                    yield TransportResponse(
                        status_code=response.status_code,
                        reason_phrase=response.reason_phrase,
                        headers=flatten_headers(response.headers),
                        chunks=response.aiter_raw(),
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = str(e) or e.__class__.__name__
            raise TransportError(message, e) from e
