"""
Out-of-process execution for synchronous requests.

Blocking semantics are obtained by running the request in a helper process and
waiting for that process to exit, rather than blocking on the network from the
caller's thread. The helper contract is:

    argv:    [<"true"|"false" TLS flag>, <JSON transport options>, <body or "null">]
    success: exit 0, stdout JSON {statusCode, responseHeaders, responseBuffer, responseText}
    failure: non-zero exit, stderr JSON {name, message, stack}

``responseBuffer`` is base64 encoded.
"""

import json
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import ProcessError
from .models import SyncResponse, TransportOptions

logger = logging.getLogger(__name__)

HELPER_MODULE = "xmlhttprequest.sync_helper"
NULL_BODY = "null"


class SyncBridge(ABC):
    """Abstract base class for blocking request execution."""

    @abstractmethod
    def execute(self, is_tls: bool, options: TransportOptions,
                body: Optional[Union[str, bytes]] = None) -> SyncResponse:
        """
        Perform one request/response cycle, blocking until it completes.

        Args:
            is_tls: Whether the request goes over https
            options: Transport options for the request
            body: Optional request body

        Returns:
            The helper's response payload

        Raises:
            ProcessError: If the request could not be completed
        """
        pass

    def cancel(self) -> None:
        """Abandon the request currently executing, if any."""
        pass


def encode_body_arg(body: Optional[Union[str, bytes]]) -> str:
    """Encode a request body as a command line argument."""
    if body is None:
        return NULL_BODY
    if isinstance(body, bytes):
        return os.fsdecode(body)
    return body


def decode_body_arg(arg: Optional[str]) -> Optional[bytes]:
    """Inverse of encode_body_arg. A literal ``null`` means no body."""
    if arg is None or arg == NULL_BODY:
        return None
    return os.fsencode(arg)


class SubprocessSyncBridge(SyncBridge):
    """Runs the helper module in a child Python interpreter."""

    def __init__(self, python_executable: Optional[str] = None):
        self.python_executable = python_executable or sys.executable
        self._process: Optional[subprocess.Popen] = None

    def build_args(self, is_tls: bool, options: TransportOptions,
                   body: Optional[Union[str, bytes]] = None) -> List[str]:
        return [
            self.python_executable,
            "-m",
            HELPER_MODULE,
            "true" if is_tls else "false",
            options.to_json(),
            encode_body_arg(body),
        ]

    def _child_env(self):
        # Make the package importable by the child even when not installed
        env = dict(os.environ)
        package_root = str(Path(__file__).resolve().parent.parent)
        existing = env.get("PYTHONPATH")
        env["PYTHONPATH"] = package_root if not existing else os.pathsep.join([package_root, existing])
        return env

    def execute(self, is_tls: bool, options: TransportOptions,
                body: Optional[Union[str, bytes]] = None) -> SyncResponse:
        args = self.build_args(is_tls, options, body)
        logger.debug(f"Spawning sync helper for {options.method} {options.url}")

        try:
            self._process = subprocess.Popen(  # noqa: S603 - fixed interpreter and module
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self._child_env(),
            )
        except (OSError, ValueError) as e:
            # ValueError: arguments the OS cannot pass, such as a NUL in the body
            raise ProcessError(f"Failed to start sync helper: {e}") from e

        process = self._process
        try:
            stdout, stderr = process.communicate()
        finally:
            self._process = None

        if process.returncode != 0:
            raise self.parse_error(stderr, process.returncode)

        try:
            return SyncResponse.from_json(stdout.decode("utf-8"))
        except (ValueError, KeyError, TypeError) as e:
            raise ProcessError(f"Malformed sync helper output: {e}", process.returncode) from e

    def cancel(self) -> None:
        process = self._process
        if process is not None and process.poll() is None:
            logger.debug(f"Killing sync helper pid={process.pid}")
            process.kill()

    @staticmethod
    def parse_error(stderr: bytes, returncode: int) -> ProcessError:
        """Build a ProcessError from the helper's diagnostic output.

        The JSON document is the last non-empty line; anything before it is log
        output.
        """
        text = stderr.decode("utf-8", errors="replace").strip()
        lines = [line for line in text.splitlines() if line.strip()]

        if lines:
            try:
                data = json.loads(lines[-1])
            except ValueError:
                data = None
            if isinstance(data, dict):
                return ProcessError(
                    str(data.get("message") or "Sync helper failed"),
                    returncode=returncode,
                    name=data.get("name"),
                    stack=data.get("stack"),
                )

        return ProcessError(
            text or f"Sync helper exited with status {returncode}",
            returncode=returncode,
        )
