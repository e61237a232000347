from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse


router = APIRouter(tags=["health"])


@router.get("/_ah/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"
