"""FastAPI dependencies exposing the objects built once by ``create_app``."""

from __future__ import annotations

from fastapi import Request

from auth.context import AuthContext
from core.errors import InvalidTenant
from core.settings import Settings
from core.tenants import TenantPolicy, TenantRegistry
from service.permissions import DeletePolicy


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> TenantRegistry:
    return request.app.state.registry


def get_delete_policy(request: Request) -> DeletePolicy:
    return request.app.state.delete_policy


def get_auth_context(request: Request) -> AuthContext:
    context = getattr(request.state, "auth", None)
    if not isinstance(context, AuthContext):
        # AuthMiddleware always sets this for /api/ routes
        raise InvalidTenant("Client could not be resolved")
    return context


def get_tenant_policy(request: Request) -> TenantPolicy:
    return get_registry(request).lookup(get_auth_context(request).tenant_id)
