"""
Asynchronous request execution.

The executor runs on the caller's asyncio loop as a single task per request:
it streams the response from the transport, chases redirects, accumulates body
chunks and reports progress back to the owning XMLHttpRequest.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

from .decoding import decode_response
from .exceptions import InvalidStateError, XMLHttpRequestError
from .files import FileReader
from .models import TLSOptions, TransportOptions
from .redirects import follow_redirect
from .states import LOADING
from .transport import Transport

if TYPE_CHECKING:
    from .xhr import XMLHttpRequest

logger = logging.getLogger(__name__)

BODYLESS_METHODS = frozenset(["GET", "HEAD"])


class RequestExecutor:
    """Drives the asynchronous transport call for one XMLHttpRequest."""

    def __init__(self, xhr: "XMLHttpRequest", transport: Transport, files: FileReader,
                 tls: Optional[TLSOptions] = None):
        self._xhr = xhr
        self._transport = transport
        self._files = files
        self._tls = tls
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def running_loop() -> asyncio.AbstractEventLoop:
        """Return the running event loop.

        Raises:
            InvalidStateError: If called outside of a running event loop
        """
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise InvalidStateError(
                "INVALID_STATE_ERR: an asynchronous send() requires a running event loop"
            ) from None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, options: TransportOptions, body: Optional[bytes] = None) -> asyncio.Task:
        """Schedule the request on the running loop."""
        return self._spawn(self.fetch, options, body)

    def start_file(self, path: str) -> asyncio.Task:
        """Schedule a non-blocking read of a local file."""
        return self._spawn(self.read_file, path)

    def cancel(self) -> None:
        """Cancel the outstanding task, closing its transport stream."""
        if self.in_flight:
            logger.debug("Cancelling in-flight request")
            self._task.cancel()
        self._task = None

    def _spawn(self, operation: Callable[..., Awaitable[None]], *args) -> asyncio.Task:
        loop = self.running_loop()
        self._task = loop.create_task(self._run(operation(*args)))
        return self._task

    def _owns_request(self) -> bool:
        """Whether the calling task still drives the XMLHttpRequest.

        A cancelled task keeps running until its next suspension point, and by
        then the object may have been reopened and sent again by a callback.
        """
        return self._task is not None and asyncio.current_task() is self._task

    async def _run(self, operation: Awaitable[None]) -> None:
        try:
            await operation
        except (XMLHttpRequestError, OSError) as e:
            if self._owns_request():
                logger.warning(f"Request failed: {e.__class__.__name__}: {e}")
                self._xhr.handle_error(e)
        except Exception as e:
            if self._owns_request():
                logger.error(f"Unexpected request failure: {e.__class__.__name__}: {e}", exc_info=True)
                self._xhr.handle_error(e)

    async def fetch(self, options: TransportOptions, body: Optional[bytes] = None) -> None:
        """Issue the request, following 302/303/307 redirects without limit."""
        xhr = self._xhr
        url = options.url
        chunks: List[bytes] = []

        while True:
            async with self._transport.stream(options, body) as response:
                hop = follow_redirect(
                    response.status_code,
                    options,
                    response.headers.get("location"),
                    url,
                    tls=self._tls,
                )
                if not self._owns_request():
                    return
                if hop is not None:
                    # No state transition for intermediate hops
                    xhr._redirected(hop.url)
                    url, options = hop.url, hop.options
                    if options.method in BODYLESS_METHODS:
                        body = None
                    continue

                xhr._headers_received(response.status_code, response.reason_phrase, response.headers)

                async for chunk in response.aiter_chunks():
                    # Callbacks may have aborted or reopened the request
                    if not self._owns_request() or not xhr._send_flag:
                        return
                    if chunk:
                        chunks.append(chunk)
                    xhr._set_state(LOADING)
            break

        if self._owns_request() and xhr._send_flag:
            decoded = decode_response(chunks, response.headers.get("content-encoding"))
            xhr._complete(decoded.buffer, decoded.text)

    async def read_file(self, path: str) -> None:
        data = await self._files.aread_bytes(path)
        if not self._owns_request():
            return
        decoded = decode_response(data)
        self._xhr._complete(decoded.buffer, decoded.text, status=200, status_text="OK")
