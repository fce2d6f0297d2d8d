"""
Response body decoding honoring the Content-Encoding header.
"""

import gzip
import logging
import zlib
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import unlzw3

from .exceptions import DecodingError

logger = logging.getLogger(__name__)

GZIP_ENCODINGS = frozenset(["gzip", "x-gzip"])
DEFLATE_ENCODINGS = frozenset(["deflate"])
COMPRESS_ENCODINGS = frozenset(["compress", "x-compress"])


@dataclass
class DecodedBody:
    """Decoded response text and the raw bytes it was produced from."""

    text: str
    buffer: bytes


def _inflate(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error:
        # Some servers send a raw deflate stream without the zlib wrapper
        return zlib.decompress(data, -zlib.MAX_WBITS)


def decompress(data: bytes, content_encoding: Optional[str]) -> bytes:
    """Apply the inverse of a content-encoding to a body.

    Args:
        data: Raw body bytes as received
        content_encoding: Value of the Content-Encoding header, if any

    Returns:
        Decompressed bytes, or ``data`` itself for identity/unknown encodings

    Raises:
        DecodingError: If the body is not valid for the declared encoding
    """
    encoding = (content_encoding or "").strip().lower()
    if not data or not encoding:
        return data

    try:
        if encoding in GZIP_ENCODINGS:
            return gzip.decompress(data)
        if encoding in DEFLATE_ENCODINGS:
            return _inflate(data)
        if encoding in COMPRESS_ENCODINGS:
            return unlzw3.unlzw(data)
    except (OSError, EOFError, ValueError, zlib.error) as e:
        raise DecodingError(f"Failed to decode {encoding} response body: {e}") from e

    if encoding != "identity":
        logger.debug(f"Unrecognized content-encoding '{encoding}', using identity")
    return data


def decode_response(chunks: Union[bytes, Iterable[bytes]],
                    content_encoding: Optional[str] = None) -> DecodedBody:
    """Turn accumulated body chunks into response text.

    The returned buffer is the untouched byte sequence; only the text is
    decompressed and decoded as UTF-8.
    """
    if isinstance(chunks, (bytes, bytearray)):
        buffer = bytes(chunks)
    else:
        buffer = b"".join(chunks)

    text = decompress(buffer, content_encoding).decode("utf-8", errors="replace")
    return DecodedBody(text=text, buffer=buffer)
