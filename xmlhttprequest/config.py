"""
Per-instance configuration for XMLHttpRequest.

Each setting is resolved with the priority: explicit argument, then
environment variable, then the built-in default.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from .models import TLSOptions

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "python-XMLHttpRequest"

ENV_USER_AGENT = "XMLHTTPREQUEST_USER_AGENT"
ENV_DISABLE_HEADER_CHECK = "XMLHTTPREQUEST_DISABLE_HEADER_CHECK"
ENV_REJECT_UNAUTHORIZED = "XMLHTTPREQUEST_REJECT_UNAUTHORIZED"
ENV_PYTHON = "XMLHTTPREQUEST_PYTHON"
ENV_LOG_LEVEL = "XMLHTTPREQUEST_LOG_LEVEL"


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable.

    Accepts true/1/yes/on and false/0/no/off in any case; anything else,
    including an unset variable, yields ``default``.
    """
    env_value = os.environ.get(name, '').lower()
    if env_value in ('true', '1', 'yes', 'on'):
        return True
    elif env_value in ('false', '0', 'no', 'off'):
        return False
    if env_value:
        logger.warning(f"Ignoring unrecognized value for {name}: {env_value!r}")
    return default


@dataclass
class XMLHttpRequestOptions:
    """Options accepted by the XMLHttpRequest constructor.

    TLS fields only apply to https requests. Fields left as None are filled
    from the environment or defaults when the options object is created.
    """

    pfx: Optional[str] = None
    key: Optional[str] = None
    passphrase: Optional[str] = None
    cert: Optional[str] = None
    ca: Optional[str] = None
    ciphers: Optional[str] = None
    reject_unauthorized: Optional[bool] = None
    user_agent: Optional[str] = None
    disable_header_check: Optional[bool] = None
    python_executable: Optional[str] = None

    def __post_init__(self):
        if self.reject_unauthorized is None:
            self.reject_unauthorized = env_flag(ENV_REJECT_UNAUTHORIZED, True)

        if self.disable_header_check is None:
            self.disable_header_check = env_flag(ENV_DISABLE_HEADER_CHECK, False)

        # User agent: arg > env > default
        self.user_agent = self.user_agent or \
            os.environ.get(ENV_USER_AGENT) or DEFAULT_USER_AGENT

        # Helper interpreter: arg > env > current interpreter
        self.python_executable = self.python_executable or \
            os.environ.get(ENV_PYTHON) or sys.executable

    @property
    def tls(self) -> TLSOptions:
        return TLSOptions(
            pfx=self.pfx,
            key=self.key,
            passphrase=self.passphrase,
            cert=self.cert,
            ca=self.ca,
            ciphers=self.ciphers,
            reject_unauthorized=bool(self.reject_unauthorized),
        )
