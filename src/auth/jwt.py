"""JWT helpers: HMAC verification of bearer tokens and admin token issuance."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

logger = logging.getLogger(__name__)

# Any member of the HMAC family verifies; RS*/ES*/none are rejected.
HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]

TOKEN_CLIENT_CLAIM = "shared"
UNKNOWN_USER = "unknown"


class TokenValidationError(RuntimeError):
    """Raised when an incoming JWT cannot be validated."""


def decode_bearer(token: str, secret: str) -> Dict[str, Any]:
    """Validate *token* against the shared *secret* and return decoded claims.

    Args:
        token: Raw token without the ``Bearer`` prefix.
        secret: Shared HMAC signing secret.

    Raises:
        TokenValidationError: On expiry, signature mismatch or a non-HMAC algorithm.

    Returns:
        Decoded JWT claims as dictionary.
    """
    try:
        return jwt.decode(token, secret, algorithms=HMAC_ALGORITHMS)
    except jwt.ExpiredSignatureError as exc:
        logger.info("JWT expired")
        raise TokenValidationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("Invalid JWT: %s", exc)
        raise TokenValidationError(str(exc)) from exc


def user_id_from_claims(claims: Dict[str, Any]) -> str:
    """
    Extract the acting user from verified claims.
    Issuers disagree on naming, so ``sub`` wins, then ``user_id``, then a placeholder.
    """
    for claim in ("sub", "user_id"):
        value = claims.get(claim)
        if value is not None:
            return str(value)
    return UNKNOWN_USER


def issue_token(
    subject: str,
    secret: str,
    *,
    ttl: timedelta = timedelta(hours=24),
    algorithm: str = "HS256",
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Sign a token for *subject*.

    Returns:
        Tuple of (token string, expiry as aware UTC datetime)
    """
    if algorithm not in HMAC_ALGORITHMS:
        raise ValueError(f"Unsupported signing algorithm: {algorithm}")

    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + ttl
    claims = {
        "sub": subject,
        "client": TOKEN_CLIENT_CLAIM,
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(claims, secret, algorithm=algorithm), expires_at
