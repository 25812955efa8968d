from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for the hosting platform.

    Does not touch the AI provider or the SMTP server, so it stays green while
    an upstream is down.
    """

    return {"status": "ok"}
