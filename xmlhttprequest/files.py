"""
Filesystem collaborator used for file:// requests.
"""

from pathlib import Path

import anyio


class FileReader:
    """Byte-level file reads, blocking and non-blocking."""

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    async def aread_bytes(self, path: str) -> bytes:
        return await anyio.Path(path).read_bytes()
