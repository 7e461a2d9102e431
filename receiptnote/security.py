"""Request authentication helpers."""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import HTTPException, status

from .settings import Settings, get_settings


def _extract_bearer(token_header: Optional[str]) -> Optional[str]:
    if not token_header:
        return None
    parts = token_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def verify_admin_token(token_header: Optional[str], settings: Optional[Settings] = None) -> None:
    """Validate an incoming Authorization header for admin endpoints."""

    settings = settings or get_settings()
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="admin_token_not_configured")
    token = _extract_bearer(token_header)
    if not token or not hmac.compare_digest(token.encode(), settings.admin_token.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_admin_token")


__all__ = ["verify_admin_token"]
