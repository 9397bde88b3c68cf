from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.errors import InvalidTenant
from core.settings import Settings

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class TenantPolicy(BaseModel):
    """Per-tenant upload rules. Immutable once the registry is built."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    max_file_size: int = Field(gt=0)
    allowed_types: tuple[str, ...] = ("*/*",)
    storage_root: str = Field(validation_alias=AliasChoices("storageRoot", "storagePath", "storage_root"))
    requires_auth: bool = False
    compression_enabled: bool = False  # informational only
    description: str = ""

    @field_validator("storage_root")
    @classmethod
    def _relative_root(cls, value: str) -> str:
        path = PurePosixPath(value.replace("\\", "/"))
        if not value.strip() or not path.parts or path.is_absolute() or ".." in path.parts:
            raise ValueError(f"storage root must be a relative path inside UPLOAD_DIR: {value!r}")
        return str(path)


DEFAULT_TENANTS: dict[str, TenantPolicy] = {
    "acricolor": TenantPolicy(
        max_file_size=50 * MB,
        allowed_types=("image/*", "application/pdf", "text/*"),
        storage_root="acricolor",
        requires_auth=True,
        compression_enabled=True,
        description="Acricolor - catalogues and documents",
    ),
    "lobeck": TenantPolicy(
        max_file_size=100 * MB,
        allowed_types=("*/*",),
        storage_root="lobeck",
        requires_auth=True,
        compression_enabled=True,
        description="Lobeck - technical documents and manuals",
    ),
    "gaesa": TenantPolicy(
        max_file_size=200 * MB,
        allowed_types=("*/*",),
        storage_root="gaesa",
        requires_auth=True,
        compression_enabled=True,
        description="Gaesa - engineering and project files",
    ),
    "shared": TenantPolicy(
        max_file_size=10 * MB,
        allowed_types=("image/*", "application/pdf", "text/*"),
        storage_root="shared",
        requires_auth=False,
        compression_enabled=False,
        description="Shared files - no authentication required",
    ),
}


class TenantRegistry:
    """Read-only mapping from tenant id to its policy."""

    def __init__(self, policies: Mapping[str, TenantPolicy]) -> None:
        self._policies = MappingProxyType(dict(policies))

    def lookup(self, tenant_id: str) -> TenantPolicy:
        try:
            return self._policies[tenant_id]
        except KeyError:
            raise InvalidTenant(f"Invalid client: {tenant_id}") from None

    def exists(self, tenant_id: str) -> bool:
        return tenant_id in self._policies

    def list_all(self) -> frozenset[str]:
        return frozenset(self._policies)

    def __len__(self) -> int:
        return len(self._policies)


def _read_tenants_file(path: str) -> dict[str, TenantPolicy]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"TENANTS_FILE must contain a non-empty JSON object: {path}")
    return {str(tenant_id): TenantPolicy.model_validate(policy) for tenant_id, policy in raw.items()}


def load_registry(settings: Settings) -> TenantRegistry:
    """Build the registry once at startup, from TENANTS_FILE when configured."""
    if settings.TENANTS_FILE:
        policies = _read_tenants_file(settings.TENANTS_FILE)
        logger.info("Loaded %d tenants from %s", len(policies), settings.TENANTS_FILE)
    else:
        policies = dict(DEFAULT_TENANTS)

    registry = TenantRegistry(policies)
    if not registry.exists(settings.DEFAULT_CLIENT):
        raise ValueError(f"DEFAULT_CLIENT {settings.DEFAULT_CLIENT!r} is not a configured tenant")
    return registry
