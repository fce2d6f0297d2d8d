"""
URL parsing helpers shared by the executor and the redirect handler.
"""

from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from .exceptions import MalformedURL, ProtocolNotSupported

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass
class UrlTarget:
    """Where a request URL points."""

    scheme: str
    host: str
    port: int
    path: str

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def is_local(self) -> bool:
        return self.scheme == "file"

    @property
    def host_header(self) -> str:
        """Value of the Host header, with the port only when it is not the default."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port == DEFAULT_PORTS.get(self.scheme):
            return host
        return f"{host}:{self.port}"


def split_url(url: str) -> UrlTarget:
    """Parse a request URL into scheme, host, port and path (with query).

    A URL without a scheme addresses ``localhost`` over plain http. For the
    file scheme, ``path`` is the local filesystem path.

    Raises:
        ProtocolNotSupported: If the scheme is not http, https or file
        MalformedURL: If the URL cannot be parsed or its port is out of range
    """
    try:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        port = None if scheme == "file" else parts.port
    except ValueError as e:
        raise MalformedURL(url, str(e)) from e

    if scheme == "file":
        return UrlTarget(scheme="file", host="", port=0, path=unquote(parts.path))

    if scheme == "":
        scheme = "http"
        host = "localhost"
    elif scheme in DEFAULT_PORTS:
        host = parts.hostname or "localhost"
    else:
        raise ProtocolNotSupported(scheme)

    port = port or DEFAULT_PORTS[scheme]
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"

    return UrlTarget(scheme=scheme, host=host, port=port, path=path)
