from __future__ import annotations

from pydantic import BaseModel


class EchoResponse(BaseModel):
    message: str
