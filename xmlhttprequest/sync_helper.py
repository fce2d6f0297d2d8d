"""
Helper process for synchronous requests.

Run as ``python -m xmlhttprequest.sync_helper <tls> <options-json> <body|null>``.
Performs exactly one request/response cycle on its own event loop, follows no
redirects, and reports the result as JSON (see ``sync_bridge``).
"""

import asyncio
import json
import logging
import os
import sys
import traceback
from typing import Dict, List, Optional

from .config import ENV_LOG_LEVEL
from .decoding import decode_response
from .models import SyncResponse, TransportOptions
from .sync_bridge import decode_body_arg
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


def setup_logging():
    """Log to stderr only when asked to; stderr otherwise carries the error JSON."""
    level = os.environ.get(ENV_LOG_LEVEL)
    if not level:
        return
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


async def make_sync_request(options: TransportOptions, body: Optional[bytes] = None,
                            transport: Optional[Transport] = None) -> SyncResponse:
    """Issue a single request and collect the whole response."""
    transport = transport or HttpxTransport()
    chunks: List[bytes] = []

    async with transport.stream(options, body) as response:
        async for chunk in response.aiter_chunks():
            chunks.append(chunk)

    decoded = decode_response(chunks, response.headers.get("content-encoding"))
    return SyncResponse(
        status_code=response.status_code,
        headers=response.headers,
        buffer=decoded.buffer,
        text=decoded.text,
    )


def error_payload(error: BaseException) -> Dict[str, str]:
    return {
        "name": error.__class__.__name__,
        "message": str(error) or error.__class__.__name__,
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }


def main(argv: Optional[List[str]] = None, transport: Optional[Transport] = None) -> int:
    """Entry point; returns the process exit status."""
    args = sys.argv[1:] if argv is None else argv
    setup_logging()

    try:
        if len(args) < 2:
            raise ValueError("usage: sync_helper <tls> <options-json> [body|null]")
        is_tls = args[0] == "true"
        options = TransportOptions.from_dict(json.loads(args[1]), secure=is_tls)
        body = decode_body_arg(args[2] if len(args) > 2 else None)
        logger.debug(f"Sync helper request: {options.method} {options.url}")
        response = asyncio.run(make_sync_request(options, body, transport))
    except Exception as e:
        # Anything that goes wrong is reported to the parent over stderr
        sys.stderr.write(json.dumps(error_payload(e)))
        sys.stderr.flush()
        return 1

    sys.stdout.write(response.to_json())
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
