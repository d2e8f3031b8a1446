"""Security utilities: JWT access tokens and the token blacklist check."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with a unique JTI for blacklisting support.

    Token issuance belongs to the identity service; this helper exists for
    operators and tests. Expected claims: ``sub``, ``tenant_id``, ``role``.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token. Checks the blacklist if available."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True}
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None

    jti = payload.get("jti")
    if jti and _is_token_blacklisted(jti):
        logger.debug(f"Token {jti} is blacklisted")
        return None

    return payload


def _is_token_blacklisted(jti: str) -> bool:
    """Revoked tokens are written to Redis by the identity service."""
    if not settings.redis_url:
        return False
    try:
        import redis
        r = redis.from_url(settings.redis_url, socket_connect_timeout=1)
        return bool(r.get(f"token_blacklist:{jti}"))
    except Exception as e:
        logger.warning(f"Redis blacklist check failed (token may be allowed through): {e}")
        return False
