# file: src/auth/middleware.py

"""ASGI middleware that resolves the tenant and enforces per-tenant JWT auth."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from core import Settings, TenantRegistry
from core.errors import FileServerError
from .resolver import resolve_auth_context

logger = logging.getLogger(__name__)


class AuthMiddleware:
    """Attach an AuthContext to every ``/api/`` request or reject it early."""

    PROTECTED_PREFIX = "/api/"

    def __init__(self, app: ASGIApp, settings: Settings, registry: TenantRegistry) -> None:
        self.app = app
        self.settings = settings
        self.registry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # Only handle HTTP requests; pass through websockets, lifespan, etc.
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # /health, /login, docs
        if not scope["path"].startswith(self.PROTECTED_PREFIX):
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        # Allow CORS preflight
        if request.method.upper() == "OPTIONS":
            await self.app(scope, receive, send)
            return

        try:
            context = resolve_auth_context(
                path=scope["path"],
                headers=request.headers,
                query_params=request.query_params,
                registry=self.registry,
                default_tenant=self.settings.DEFAULT_CLIENT,
                secret=self.settings.JWT_SECRET.get_secret_value(),
                auth_enabled=self.settings.AUTH_ENABLED,
            )
        except FileServerError as exc:
            logger.warning("Rejected %s %s: %s", request.method, scope["path"], exc.message)
            headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
            resp = JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)
            await resp(scope, receive, send)
            return

        # Attach context and continue
        request.state.auth = context
        await self.app(scope, receive, send)
