"""Bearer-token guard for service endpoints.

Clients calling ``/manifest`` or ``/execute`` send
``Authorization: Bearer <SERVICE_AUTH_TOKEN>``.  When no token is
configured the check is skipped so local development needs no setup.
"""

from __future__ import annotations

import hmac

import structlog
from fastapi import HTTPException, Request

from shared.config import get_settings

logger = structlog.get_logger()

_BEARER_PREFIX = "Bearer "


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    return header[len(_BEARER_PREFIX):]


async def require_service_auth(request: Request) -> None:
    """FastAPI dependency rejecting calls without the shared token (401)."""
    expected = get_settings().service_auth_token
    if not expected:
        logger.debug("service_auth_disabled", path=request.url.path)
        return

    token = _extract_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing service auth token")

    if not hmac.compare_digest(token, expected):
        logger.warning(
            "service_auth_failed",
            path=request.url.path,
            remote=request.client.host if request.client else "unknown",
        )
        raise HTTPException(status_code=401, detail="Invalid service auth token")
