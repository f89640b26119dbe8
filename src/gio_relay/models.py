from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GIO_DOMAIN = 0x27

PayloadEncoding = Literal["utf8-lossy", "raw"]


class Envelope(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    domain: int = Field(ge=0, le=0xFFFF)
    id: str

    def payload_bytes(self) -> bytes:
        return bytes.fromhex(self.id)


@dataclass(slots=True)
class GioAck:
    status_code: int
    body: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200
