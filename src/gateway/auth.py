"""Bearer-token authentication for the HTTP gateway."""

from __future__ import annotations

import hmac

import structlog
from fastapi import Request

from src.infra.errors import AuthError

logger = structlog.get_logger()

_SCHEME = "bearer"


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, else None."""
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != _SCHEME:
        return None
    token = token.strip()
    return token or None


async def require_bearer_token(request: Request) -> None:
    """FastAPI dependency: reject requests without the configured API token.

    The expected token lives on app.state.api_token (set in lifespan).
    """
    expected: str = getattr(request.app.state, "api_token", "")
    provided = extract_bearer_token(request.headers.get("authorization"))

    if not expected or provided is None:
        logger.info("auth_rejected", path=request.url.path, reason="missing_token")
        raise AuthError()
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.info("auth_rejected", path=request.url.path, reason="token_mismatch")
        raise AuthError()
