# src/interfaces/api/security.py
"""API security: optional API-key check and per-client rate limiting.

Both read the Settings attached to the running app (``app.state.settings``)
so a test app can use its own values.
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import Settings, settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

limiter = Limiter(key_func=get_remote_address)


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


def verify_api_key(
    request: Request,
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> str:
    """Check the X-API-Key header against API_AUTH_KEY.

    Returns:
        The accepted key, or ``"auth_disabled"`` when no key is configured.

    Raises:
        HTTPException: 401 if the header is missing, 403 if it is wrong.
    """
    expected = get_app_settings(request).api_auth_key
    if not expected:
        return "auth_disabled"

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Include X-API-Key header.",
        )

    if not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key.",
        )

    return api_key


def get_rate_limit_string() -> str:
    """Rate limit for slowapi in "N/minute" form."""
    return f"{settings.api_rate_limit}/minute"
