"""Transport-neutral message wrapper shared by every broker backend."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .exceptions import EncodingError


@dataclass
class Envelope:
    """Routing headers plus an opaque message payload.

    ``headers`` stays ``None`` until the first :meth:`add_header` call so an
    envelope that never received metadata encodes ``"header": null``.
    """

    message: Any = None
    headers: Optional[Dict[str, str]] = None

    def add_header(self, key: str, value: str) -> None:
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError("envelope header keys and values must be strings")
        if self.headers is None:
            self.headers = {}
        self.headers[key] = value

    def header(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if self.headers is None:
            return default
        return self.headers.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        header = None
        if self.headers is not None:
            header = {"headers": dict(self.headers)}
        return {"header": header, "message": self.message}

    def encode(self) -> bytes:
        """Serialize the envelope to UTF-8 JSON."""

        try:
            return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"envelope message is not serializable: {exc}") from exc

    @classmethod
    def decode(cls, data: bytes | str) -> "Envelope":
        try:
            document = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"envelope is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise EncodingError("envelope document must be a JSON object")

        envelope = cls(message=document.get("message"))
        header = document.get("header")
        if header is None:
            return envelope
        headers = header.get("headers") if isinstance(header, Mapping) else None
        if not isinstance(headers, Mapping):
            raise EncodingError("envelope 'header' must be an object holding 'headers'")
        envelope.headers = {}
        for key, value in headers.items():
            if not isinstance(value, str):
                raise EncodingError(f"envelope header '{key}' must be a string")
            envelope.add_header(key, value)
        return envelope
