# src/core/logging_middleware.py

from time import monotonic
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("http")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = monotonic()
        response = await call_next(request)
        latency = monotonic() - start
        auth = getattr(request.state, "auth", None)
        tenant = auth.tenant_id if auth else "-"
        user = (auth.user_id if auth else None) or "-"
        size = response.headers.get("content-length", "-")
        logger.info(
            "%s %s | status=%d | %.1fms | client=%s | user=%s | size=%s",
            request.method,
            request.url.path,
            response.status_code,
            latency * 1000,
            tenant,
            user,
            size,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency": latency,
                "client_ip": request.client.host if request.client else "",
                "user_agent": request.headers.get("user-agent", ""),
                "tenant": tenant,
                "user": user,
            },
        )
        return response
