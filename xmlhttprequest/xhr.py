"""
Browser-style XMLHttpRequest on top of httpx, the filesystem and a helper process.

The request lifecycle follows the browser object: open() stores the request,
send() starts it, readyState moves through OPENED, HEADERS_RECEIVED, LOADING
and DONE, and every DONE transition fires exactly one of abort/error/load
followed by loadend. Asynchronous requests run as a task on the caller's
asyncio loop; synchronous ones block on a helper process.
"""

import base64
import logging
import traceback
from http import HTTPStatus
from typing import Dict, Optional, Union

from .config import XMLHttpRequestOptions
from .constants import COOKIE_RESPONSE_HEADERS, is_allowed_http_header, is_allowed_http_method
from .events import EventTarget
from .exceptions import InvalidStateError, ProcessError, SecurityError, UnsupportedMethod
from .executor import BODYLESS_METHODS, RequestExecutor
from .files import FileReader
from .models import RequestSettings, TransportOptions
from .states import DONE, HEADERS_RECEIVED, LOADING, OPENED, UNSENT, ReadyState
from .sync_bridge import SubprocessSyncBridge, SyncBridge
from .transport import HttpxTransport, Transport
from .urls import UrlTarget, split_url

logger = logging.getLogger(__name__)

Body = Union[str, bytes]


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class XMLHttpRequest(EventTarget):
    """Emulation of the browser XMLHttpRequest object.

    Example:
        ```python
        xhr = XMLHttpRequest()

        def on_change(request):
            if request.ready_state == XMLHttpRequest.DONE:
                print(request.status, request.response_text)

        xhr.onreadystatechange = on_change
        xhr.open("GET", "http://localhost:8000/")
        xhr.send()
        ```

    Asynchronous requests must be sent from within a running asyncio loop.
    """

    UNSENT = UNSENT
    OPENED = OPENED
    HEADERS_RECEIVED = HEADERS_RECEIVED
    LOADING = LOADING
    DONE = DONE

    def __init__(self, options: Optional[XMLHttpRequestOptions] = None,
                 transport: Optional[Transport] = None,
                 sync_bridge: Optional[SyncBridge] = None,
                 file_reader: Optional[FileReader] = None):
        super().__init__()
        self._options = options or XMLHttpRequestOptions()
        self._files = file_reader or FileReader()
        self._sync_bridge = sync_bridge or SubprocessSyncBridge(self._options.python_executable)
        self._executor = RequestExecutor(
            self,
            transport or HttpxTransport(),
            self._files,
            tls=self._options.tls,
        )

        self._settings: Optional[RequestSettings] = None
        self._default_request_headers = {
            "user-agent": self._options.user_agent,
            "accept": "*/*",
        }
        self._request_headers: Dict[str, str] = dict(self._default_request_headers)
        self._response_headers: Dict[str, str] = {}

        # Not part of the browser API
        self._disable_header_check = bool(self._options.disable_header_check)

        self._send_flag = False
        self._error_flag = False
        self._aborted_flag = False

        self.ready_state = UNSENT
        self.response_buffer = b""
        self.response_text = ""
        self.response_xml = ""
        self.status: Optional[int] = None
        self.status_text: Optional[str] = None

    def set_disable_header_check(self, state: bool) -> None:
        """Disable or enable the forbidden request header check. Enabled by default."""
        self._disable_header_check = bool(state)

    def open(self, method: str, url, async_: bool = True,
             user: Optional[str] = None, password: Optional[str] = None) -> None:
        """Open the connection.

        Args:
            method: Request method (eg GET, POST)
            url: Absolute http, https or file URL
            async_: Asynchronous request (default True)
            user: Username for basic authentication
            password: Password for basic authentication

        Raises:
            SecurityError: If the method is TRACE, TRACK or CONNECT
        """
        with self._dispatch_batch():
            self.abort()

            self._error_flag = False
            self._aborted_flag = False

            if not is_allowed_http_method(method):
                raise SecurityError()

            self._settings = RequestSettings(
                method=method,
                url=str(url),
                async_=async_ if isinstance(async_, bool) else True,
                user=user or None,
                password=password or None,
            )
            logger.debug(f"Opened {method} {self._settings.url} (async={self._settings.async_})")

            self._set_state(OPENED)

    def set_request_header(self, name: str, value) -> bool:
        """Set a request header.

        Returns:
            False if the header is forbidden and was not set, otherwise True

        Raises:
            InvalidStateError: If not OPENED or if send() is in progress
        """
        if self.ready_state != OPENED:
            raise InvalidStateError(
                "INVALID_STATE_ERR: setRequestHeader can only be called when state is OPEN"
            )

        if self._send_flag:
            raise InvalidStateError("INVALID_STATE_ERR: send flag is true")

        lowercase_name = name.lower()
        if not is_allowed_http_header(lowercase_name, self._disable_header_check):
            logger.warning(f"Refused to set unsafe header '{lowercase_name}'")
            return False

        self._request_headers[lowercase_name] = str(value)
        return True

    def get_request_header(self, name: str) -> str:
        """Request header value, or the empty string if not set."""
        if isinstance(name, str):
            return self._request_headers.get(name.lower(), "")
        return ""

    def get_response_header(self, name: str) -> Optional[str]:
        """Response header value, or None if unavailable."""
        if (isinstance(name, str)
                and self.ready_state > OPENED
                and not self._error_flag):
            return self._response_headers.get(name.lower()) or None
        return None

    def get_all_response_headers(self) -> str:
        """All response headers except cookies, separated by CR+LF."""
        if self.ready_state < HEADERS_RECEIVED or self._error_flag:
            return ""

        return "\r\n".join(
            f"{name}: {value}"
            for name, value in self._response_headers.items()
            if name not in COOKIE_RESPONSE_HEADERS
        )

    def send(self, body: Optional[Body] = None) -> None:
        """Send the request.

        Args:
            body: Optional request body, ignored for GET and HEAD

        Raises:
            InvalidStateError: If not OPENED, if already sent, or if an
                asynchronous request is sent without a running event loop
            ProtocolNotSupported: If the URL scheme is not http, https or file
            UnsupportedMethod: If a file URL is requested with a method other than GET
        """
        if self.ready_state != OPENED:
            raise InvalidStateError(
                "INVALID_STATE_ERR: connection must be opened before send() is called"
            )

        if self._send_flag:
            raise InvalidStateError("INVALID_STATE_ERR: send has already been called")

        settings = self._settings
        target = split_url(settings.url)

        if target.is_local and settings.method != "GET":
            raise UnsupportedMethod(settings.method)

        if settings.async_:
            self._executor.running_loop()

        with self._dispatch_batch():
            if target.is_local:
                self._send_local(target)
                return

            options, payload = self._prepare_request(target, body)

            self._error_flag = False

            if settings.async_:
                logger.info(f"Sending {options.method} {settings.url}")
                self._send_flag = True

                # Called here for historical reasons
                self.dispatch_event("readystatechange")

                self._executor.start(options, payload)
                self.dispatch_event("loadstart")
            else:
                logger.info(f"Sending synchronous {options.method} {settings.url}")
                self._send_sync(options, payload)

    def _prepare_request(self, target: UrlTarget, body: Optional[Body]):
        settings = self._settings
        headers = self._request_headers

        # Set the Host header or the server may reject the request
        headers["host"] = target.host_header

        if settings.user:
            credentials = f"{settings.user}:{settings.password or ''}".encode("utf-8")
            headers["authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")

        payload: Optional[bytes] = None
        if settings.method in BODYLESS_METHODS:
            payload = None
        elif body:
            payload = body.encode("utf-8") if isinstance(body, str) else bytes(body)
            headers["content-length"] = str(len(payload))
            if not headers.get("content-type"):
                headers["content-type"] = "text/plain;charset=UTF-8"
        elif settings.method == "POST":
            # Required by servers that reject a POST without Content-Length
            headers["content-length"] = "0"

        options = TransportOptions(
            host=target.host,
            port=target.port,
            path=target.path,
            method=settings.method,
            headers=dict(headers),
            secure=target.secure,
            tls=self._options.tls if target.secure else None,
        )
        return options, payload

    def _send_local(self, target: UrlTarget) -> None:
        """Load a file off the local filesystem (file://)."""
        if self._settings.async_:
            self._send_flag = True
            self._executor.start_file(target.path)
            return

        try:
            data = self._files.read_bytes(target.path)
        except OSError as e:
            self.handle_error(e)
            return
        self._complete(data, data.decode("utf-8", errors="replace"), status=200, status_text="OK")

    def _send_sync(self, options: TransportOptions, payload: Optional[bytes]) -> None:
        self._send_flag = True
        try:
            response = self._sync_bridge.execute(options.secure, options, payload)
        except ProcessError as e:
            if self._aborted_flag:
                return
            logger.warning(f"Synchronous request failed: {e}")
            self.handle_error(e, 503)
            return

        if self._aborted_flag:
            return

        self._response_headers = dict(response.headers)
        self._complete(
            response.buffer,
            response.text,
            status=response.status_code,
            status_text=_status_phrase(response.status_code),
        )

    def handle_error(self, error: BaseException, status: int = 0) -> None:
        """Record a failure and finish the request with an 'error' event.

        Args:
            error: The exception that ended the request
            status: Status to report instead of the default 0
        """
        self.status = status or 0
        self.status_text = str(error) or error.__class__.__name__

        stack = getattr(error, "stack", None) if isinstance(error, ProcessError) else None
        self.response_text = stack or "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

        self._error_flag = True
        self._send_flag = False

        self._set_state(DONE)

    def abort(self) -> None:
        """Abort the request, cancelling any transport task or helper process."""
        with self._dispatch_batch():
            self._executor.cancel()
            self._sync_bridge.cancel()

            self._request_headers = dict(self._default_request_headers)

            self.response_text = ""
            self.response_xml = ""

            self._error_flag = True
            self._aborted_flag = True

            if (self.ready_state != UNSENT
                    and (self.ready_state != OPENED or self._send_flag)
                    and self.ready_state != DONE):
                self._send_flag = False
                self._set_state(DONE)

            self._send_flag = False
            self.ready_state = UNSENT

    def _defers_dispatch(self) -> bool:
        return self.ready_state == DONE

    def _set_state(self, state: int) -> None:
        """Change readyState and fire the matching events."""
        if self.ready_state == state or (self.ready_state == UNSENT and self._aborted_flag):
            return

        self.ready_state = ReadyState(state)
        logger.debug(f"readyState -> {self.ready_state.name}")

        is_async = self._settings is not None and self._settings.async_
        if is_async or self.ready_state < OPENED or self.ready_state == DONE:
            self.dispatch_event("readystatechange")

        if self.ready_state == DONE:
            if self._aborted_flag:
                fire = "abort"
            elif self._error_flag:
                fire = "error"
            else:
                fire = "load"

            self.dispatch_event(fire)
            self.dispatch_event("loadend")

    def _redirected(self, url: str) -> None:
        self._settings.url = url

    def _headers_received(self, status_code: int, reason_phrase: str,
                          headers: Dict[str, str]) -> None:
        self.status = status_code
        self.status_text = reason_phrase or _status_phrase(status_code)
        self._response_headers = dict(headers)
        self._set_state(HEADERS_RECEIVED)

    def _complete(self, buffer: bytes, text: str, status: Optional[int] = None,
                  status_text: Optional[str] = None) -> None:
        if status is not None:
            self.status = status
            self.status_text = status_text
        self.response_buffer = buffer
        self.response_text = text

        # Cleared before DONE so callbacks chaining a new request see a settled object
        self._send_flag = False

        self._set_state(DONE)

    # Browser-style names
    setDisableHeaderCheck = set_disable_header_check
    setRequestHeader = set_request_header
    getRequestHeader = get_request_header
    getResponseHeader = get_response_header
    getAllResponseHeaders = get_all_response_headers
    handleError = handle_error
    addEventListener = EventTarget.add_event_listener
    removeEventListener = EventTarget.remove_event_listener
    dispatchEvent = EventTarget.dispatch_event

    @property
    def readyState(self) -> int:
        return self.ready_state

    @property
    def responseText(self) -> str:
        return self.response_text

    @property
    def responseXML(self) -> str:
        return self.response_xml

    @property
    def responseBuffer(self) -> bytes:
        return self.response_buffer

    @property
    def statusText(self) -> Optional[str]:
        return self.status_text
