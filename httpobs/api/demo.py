from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

router = APIRouter(prefix="/api", tags=["demo"])


@router.get("/echo/{name}")
async def echo(name: str) -> dict[str, str]:
    return {"name": name}


@router.get("/redirect")
async def redirect() -> RedirectResponse:
    return RedirectResponse(url="/health", status_code=302)


@router.get("/fail")
async def fail() -> dict[str, str]:
    raise ValueError("demo failure")
