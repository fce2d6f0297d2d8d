"""
Core data models for the XMLHttpRequest emulation.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RequestSettings:
    """Request descriptor stored by open()."""

    method: str
    url: str
    async_: bool = True
    user: Optional[str] = None
    password: Optional[str] = None


@dataclass
class TLSOptions:
    """Client TLS settings forwarded to the transport for https requests."""

    pfx: Optional[str] = None
    key: Optional[str] = None
    passphrase: Optional[str] = None
    cert: Optional[str] = None
    ca: Optional[str] = None
    ciphers: Optional[str] = None
    reject_unauthorized: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pfx": self.pfx,
            "key": self.key,
            "passphrase": self.passphrase,
            "cert": self.cert,
            "ca": self.ca,
            "ciphers": self.ciphers,
            "rejectUnauthorized": self.reject_unauthorized,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TLSOptions":
        reject = data.get("rejectUnauthorized")
        return cls(
            pfx=data.get("pfx"),
            key=data.get("key"),
            passphrase=data.get("passphrase"),
            cert=data.get("cert"),
            ca=data.get("ca"),
            ciphers=data.get("ciphers"),
            reject_unauthorized=True if reject is None else bool(reject),
        )


@dataclass
class TransportOptions:
    """Everything the transport needs to issue one request.

    ``secure`` selects https; it travels separately from the JSON form, which
    only carries TLS settings when the request is secure.
    """

    host: str
    port: int
    path: str
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    secure: bool = False
    tls: Optional[TLSOptions] = None

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def url(self) -> str:
        """Absolute URL addressed by these options."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "path": self.path,
            "method": self.method,
            "headers": dict(self.headers),
        }
        if self.secure and self.tls is not None:
            data.update(self.tls.to_dict())
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], secure: bool = False) -> "TransportOptions":
        return cls(
            host=data["host"],
            port=int(data["port"]),
            path=data.get("path") or "/",
            method=data["method"],
            headers={str(k).lower(): str(v) for k, v in (data.get("headers") or {}).items()},
            secure=secure,
            tls=TLSOptions.from_dict(data) if secure else None,
        )


@dataclass
class SyncResponse:
    """Payload written by the synchronous request helper on success."""

    status_code: int
    headers: Dict[str, str]
    buffer: bytes
    text: str

    def to_json(self) -> str:
        return json.dumps({
            "statusCode": self.status_code,
            "responseHeaders": self.headers,
            "responseBuffer": base64.b64encode(self.buffer).decode("ascii"),
            "responseText": self.text,
        })

    @classmethod
    def from_json(cls, raw: str) -> "SyncResponse":
        data = json.loads(raw)
        return cls(
            status_code=int(data["statusCode"]),
            headers={str(k).lower(): v for k, v in (data.get("responseHeaders") or {}).items()},
            buffer=base64.b64decode(data.get("responseBuffer") or ""),
            text=data.get("responseText") or "",
        )
