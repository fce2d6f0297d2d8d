"""
Browser-style XMLHttpRequest for Python.

This package lets code written against the browser XMLHttpRequest object run
outside a browser. Asynchronous requests run on asyncio through httpx,
synchronous requests block on an isolated helper process, and file:// URLs
are read from the local filesystem.
"""

from .config import XMLHttpRequestOptions
from .constants import FORBIDDEN_REQUEST_HEADERS, FORBIDDEN_REQUEST_METHODS
from .exceptions import (
    DecodingError,
    InvalidStateError,
    MalformedURL,
    ProcessError,
    ProtocolNotSupported,
    SecurityError,
    TransportError,
    UnsupportedMethod,
    XMLHttpRequestError,
)
from .states import DONE, HEADERS_RECEIVED, LOADING, OPENED, UNSENT, ReadyState
from .sync_bridge import SubprocessSyncBridge, SyncBridge
from .transport import HttpxTransport, Transport, TransportResponse
from .xhr import XMLHttpRequest

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "XMLHttpRequest",
    "XMLHttpRequestOptions",
    "ReadyState",
    "UNSENT",
    "OPENED",
    "HEADERS_RECEIVED",
    "LOADING",
    "DONE",
    "FORBIDDEN_REQUEST_HEADERS",
    "FORBIDDEN_REQUEST_METHODS",
    "Transport",
    "HttpxTransport",
    "TransportResponse",
    "SyncBridge",
    "SubprocessSyncBridge",
    "XMLHttpRequestError",
    "SecurityError",
    "InvalidStateError",
    "ProtocolNotSupported",
    "MalformedURL",
    "UnsupportedMethod",
    "TransportError",
    "ProcessError",
    "DecodingError",
]
