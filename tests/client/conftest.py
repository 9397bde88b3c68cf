from unittest.mock import patch

import pytest

BASE_URL = "http://0.0.0.0:3000"


@pytest.fixture
def mock_httpx(test_client):
    """Patch httpx.get, httpx.post and httpx.delete to use our test client."""

    def _path(url: str) -> str:
        # Strip the base URL since TestClient expects just the path
        return url.replace(BASE_URL, "")

    def mock_get(url: str, **kwargs):
        return test_client.get(_path(url), **kwargs)

    def mock_post(url: str, **kwargs):
        return test_client.post(_path(url), **kwargs)

    def mock_delete(url: str, **kwargs):
        return test_client.delete(_path(url), **kwargs)

    with patch("httpx.get", mock_get), patch("httpx.post", mock_post), patch("httpx.delete", mock_delete):
        yield
