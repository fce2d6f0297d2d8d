"""
Custom exceptions for the XMLHttpRequest emulation.
"""
from typing import Optional


class XMLHttpRequestError(Exception):
    """Base exception for XMLHttpRequest errors."""

    pass


class SecurityError(XMLHttpRequestError):
    """Raised when open() is called with a forbidden request method."""

    def __init__(self, message="SecurityError: Request method not allowed"):
        self.message = message
        super().__init__(self.message)


class InvalidStateError(XMLHttpRequestError):
    """Raised when an operation is called out of sequence."""

    def __init__(self, message="INVALID_STATE_ERR"):
        self.message = message
        super().__init__(self.message)


class ProtocolNotSupported(XMLHttpRequestError):
    """Raised when send() is called for a URL with an unknown scheme."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"Protocol not supported: {scheme}")


class UnsupportedMethod(XMLHttpRequestError):
    """Raised when a non-GET request targets the file scheme."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"XMLHttpRequest: Only GET method is supported, got {method}")


class TransportError(XMLHttpRequestError):
    """Raised when the socket, DNS or response stream fails."""

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)


class DecodingError(XMLHttpRequestError):
    """Raised when a response body does not match its content-encoding."""

    pass


class ProcessError(XMLHttpRequestError):
    """Raised when the synchronous request helper exits with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None,
                 name: Optional[str] = None, stack: Optional[str] = None):
        self.message = message
        self.returncode = returncode
        self.name = name or "Error"
        self.stack = stack
        super().__init__(self.message)


class MalformedURL(XMLHttpRequestError):
    """Raised when a request or redirect URL cannot be parsed."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        message = f"Malformed URL: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
