"""User-uploaded font embedded as a data URL."""

from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CustomFont:
    name: str
    data: str  # data:<mime>;base64,<payload>
    mime_type: str

    def raw_bytes(self) -> bytes:
        """Decode the embedded payload."""
        _, _, payload = self.data.partition(",")
        return base64.b64decode(payload)

    @classmethod
    def from_bytes(cls, name: str, raw: bytes, mime_type: str) -> CustomFont:
        encoded = base64.b64encode(raw).decode("ascii")
        return cls(name=name, data=f"data:{mime_type};base64,{encoded}", mime_type=mime_type)
