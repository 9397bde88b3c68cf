from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import find_dotenv
from pydantic import BeforeValidator, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

_SIZE_UNITS = {
    "KB": 1024,
    "MB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
}


def parse_size(value: str | int) -> int:
    """Convert ``"100MB"`` style sizes to bytes. Plain numbers are bytes."""
    if isinstance(value, int):
        return value
    size = str(value).strip().upper()
    multiplier = 1
    for suffix, unit in _SIZE_UNITS.items():
        if size.endswith(suffix):
            size = size[: -len(suffix)].strip()
            multiplier = unit
            break
    try:
        number = int(size)
    except ValueError:
        raise ValueError(f"Invalid size value: {value!r}") from None
    if number < 0:
        raise ValueError(f"Size must not be negative: {value!r}")
    return number * multiplier


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=find_dotenv(),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )
    MODE: str = "development"

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # -- Storage --
    UPLOAD_DIR: str = "./uploads"
    MAX_FILE_SIZE: Annotated[int, BeforeValidator(parse_size)] = 100 * 1024 * 1024
    TENANTS_FILE: str | None = None
    DEFAULT_CLIENT: str = "shared"
    SCAN_TIMEOUT_SECONDS: float | None = None

    # -- Auth --
    AUTH_ENABLED: bool = True
    JWT_SECRET: SecretStr = SecretStr("default_secret_change_in_production")
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_HOURS: int = 24
    ADMIN_USER: str = "admin"
    ADMIN_PASSWORD: SecretStr = SecretStr("admin123")

    # comma separated, e.g. "https://a.example,https://b.example"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def CORS_ORIGINS(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def BASE_URL(self) -> str:
        return f"http://{self.HOST}:{self.PORT}"

    @property
    def upload_root(self) -> Path:
        return Path(self.UPLOAD_DIR).resolve()

    @property
    def staging_dir(self) -> Path:
        return self.upload_root / ".staging"

    def is_dev(self) -> bool:
        return self.MODE == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance so settings are evaluated once only."""

    return Settings()
