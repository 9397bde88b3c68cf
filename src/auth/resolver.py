"""Tenant and user resolution for an incoming request."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from auth.context import AuthContext
from auth.jwt import TokenValidationError, decode_bearer, user_id_from_claims
from core.errors import AuthRequired, InvalidToken
from core.tenants import TenantRegistry

logger = logging.getLogger(__name__)

CLIENT_HEADER = "x-client-id"
CLIENT_QUERY_PARAM = "client"

# /api/files/<route>/<tenant> carries the tenant in the path
TENANT_PATH_ROUTES = {"list", "search"}


def tenant_from_path(path: str) -> str | None:
    parts = path.strip("/").split("/")
    if len(parts) >= 4 and parts[0] == "api" and parts[1] == "files" and parts[2] in TENANT_PATH_ROUTES:
        return parts[3] or None
    return None


def resolve_tenant_id(
    path: str,
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    default: str,
) -> str:
    """Path segment, then ``X-Client-Id``, then ``?client=``, then the default tenant."""
    return (
        tenant_from_path(path)
        or headers.get(CLIENT_HEADER)
        or query_params.get(CLIENT_QUERY_PARAM)
        or default
    )


def extract_bearer_token(authorization: str | None) -> str | None:
    """Only the exact ``Bearer <token>`` form yields a token."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def resolve_auth_context(
    *,
    path: str,
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    registry: TenantRegistry,
    default_tenant: str,
    secret: str,
    auth_enabled: bool = True,
) -> AuthContext:
    """
    Build the request's AuthContext.

    Raises:
        InvalidTenant: the resolved tenant is not registered.
        AuthRequired: the tenant needs a token and none was sent.
        InvalidToken: the token failed verification.
    """
    tenant_id = resolve_tenant_id(path, headers, query_params, default_tenant)
    policy = registry.lookup(tenant_id)

    if not policy.requires_auth or not auth_enabled:
        return AuthContext(tenant_id=tenant_id)

    token = extract_bearer_token(headers.get("authorization"))
    if token is None:
        raise AuthRequired()

    try:
        claims = decode_bearer(token, secret)
    except TokenValidationError as exc:
        raise InvalidToken(f"Invalid token: {exc}") from exc

    return AuthContext(tenant_id=tenant_id, user_id=user_id_from_claims(claims))
