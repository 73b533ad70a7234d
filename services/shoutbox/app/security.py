from __future__ import annotations

import hmac

from fastapi import Header, HTTPException

from .config import settings


def key_matches(presented: str | None, expected: str | None) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(x_api_key: str | None = Header(None)) -> None:
    if not key_matches(x_api_key, settings.api_key):
        raise HTTPException(status_code=401, detail="invalid api key")
