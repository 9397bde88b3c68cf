from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from auth.jwt import issue_token
from core import Settings
from service import create_app

TEST_SECRET = "test-secret"
MB = 1024 * 1024


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Explicit settings around a per-test upload root; .env files are ignored."""
    return Settings(
        _env_file=None,
        MODE="test",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MAX_FILE_SIZE=100 * MB,
        TENANTS_FILE=None,
        DEFAULT_CLIENT="shared",
        SCAN_TIMEOUT_SECONDS=None,
        AUTH_ENABLED=True,
        JWT_SECRET=TEST_SECRET,
        JWT_ALGORITHM="HS256",
        ADMIN_USER="admin",
        ADMIN_PASSWORD="s3cret",
        ALLOWED_ORIGINS="http://localhost:5173",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def test_client(app):
    """Fixture to create a FastAPI test client; runs the lifespan."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token() -> str:
    return issue_token("tester", TEST_SECRET)[0]


@pytest.fixture
def auth_headers(token) -> Callable[[str], dict[str, str]]:
    def _headers(tenant: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "X-Client-Id": tenant}

    return _headers


@pytest.fixture
def upload(test_client, auth_headers) -> Callable[..., httpx.Response]:
    """Upload helper: ``upload("lobeck", "a.txt", b"...", folder="docs")``."""

    def _upload(
        tenant: str,
        filename: str,
        content: bytes,
        *,
        folder: str | None = None,
        mime: str = "application/octet-stream",
    ) -> httpx.Response:
        data = {"folder": folder} if folder is not None else None
        return test_client.post(
            "/api/files/upload",
            files={"file": (filename, content, mime)},
            data=data,
            headers=auth_headers(tenant),
        )

    return _upload
