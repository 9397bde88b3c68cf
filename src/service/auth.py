# src/service/auth.py

import logging
from datetime import timedelta
from secrets import compare_digest
from typing import Annotated

from fastapi import APIRouter, Depends

from auth.context import AuthContext
from auth.jwt import issue_token
from core.errors import InvalidCredentials
from core.settings import Settings
from core.tenants import TenantRegistry
from schema.files import AuthContextResponse, LoginRequest, LoginResponse
from service.dependencies import get_app_settings, get_auth_context, get_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _credentials_match(credentials: LoginRequest, settings: Settings) -> bool:
    # both comparisons always run
    user_ok = compare_digest(credentials.username.encode(), settings.ADMIN_USER.encode())
    password_ok = compare_digest(
        credentials.password.encode(), settings.ADMIN_PASSWORD.get_secret_value().encode()
    )
    return user_ok and password_ok


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> LoginResponse:
    """Exchange the admin username/password for a signed bearer token."""
    if not _credentials_match(credentials, settings):
        logger.warning("Failed login attempt for user %r", credentials.username)
        raise InvalidCredentials()

    token, expires_at = issue_token(
        credentials.username,
        settings.JWT_SECRET.get_secret_value(),
        ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
        algorithm=settings.JWT_ALGORITHM,
    )
    logger.info("Issued token for %s (expires %s)", credentials.username, expires_at.isoformat())
    return LoginResponse(token=token, expires_at=expires_at)


@router.get("/api/me", response_model=AuthContextResponse)
def get_me(
    context: Annotated[AuthContext, Depends(get_auth_context)],
    registry: Annotated[TenantRegistry, Depends(get_registry)],
) -> AuthContextResponse:
    policy = registry.lookup(context.tenant_id)
    return AuthContextResponse(
        client=context.tenant_id,
        user_id=context.user_id,
        requires_auth=policy.requires_auth,
    )
