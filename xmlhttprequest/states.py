"""
Ready states of an XMLHttpRequest.
"""

from enum import IntEnum


class ReadyState(IntEnum):
    """Enumeration of the request lifecycle stages."""

    UNSENT = 0
    OPENED = 1
    HEADERS_RECEIVED = 2
    LOADING = 3
    DONE = 4


UNSENT = ReadyState.UNSENT
OPENED = ReadyState.OPENED
HEADERS_RECEIVED = ReadyState.HEADERS_RECEIVED
LOADING = ReadyState.LOADING
DONE = ReadyState.DONE
