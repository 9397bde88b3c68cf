from core.logging_config import setup_logging
from core.logging_middleware import LoggingMiddleware
from core.settings import Settings, get_settings
from core.tenants import TenantPolicy, TenantRegistry, load_registry

__all__ = [
    "LoggingMiddleware",
    "get_settings",
    "Settings",
    "setup_logging",
    "TenantPolicy",
    "TenantRegistry",
    "load_registry",
]
