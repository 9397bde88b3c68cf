# src/client/client.py

from typing import IO, Any

import httpx

from schema import (
    AuthContextResponse,
    BulkDeleteResponse,
    FileRecord,
    HealthResponse,
    ListResponse,
    LoginResponse,
    SearchRequest,
)


class FileServerClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase


class FileServerClient:
    """Client for interacting with the file server."""

    def __init__(
        self,
        base_url: str = "http://0.0.0.0:3000",
        tenant: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url (str): The base URL of the file server.
            tenant (str, optional): Client id sent as ``X-Client-Id``. The server
                falls back to its default client when omitted.
            access_token (str, optional): Bearer token, e.g. from ``login()``.
            timeout (float, optional): The timeout for requests.
        """
        self.base_url = base_url.rstrip("/")
        self.tenant = tenant
        self.access_token = access_token
        self.timeout = timeout

    # -------- helper --------
    def set_token(self, token: str | None) -> None:
        """Update the bearer token at runtime."""
        self.access_token = token
    # ------------------------

    @property
    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.tenant:
            headers["X-Client-Id"] = self.tenant
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _tenant_segment(self, tenant: str | None) -> str:
        tenant = tenant or self.tenant
        if not tenant:
            raise FileServerClientError("No client selected. Pass tenant= or set one on the client.")
        return tenant

    def _check(self, response: httpx.Response, action: str) -> httpx.Response:
        if response.is_error:
            raise FileServerClientError(
                f"{action} failed: {_server_message(response)}",
                status_code=response.status_code,
            )
        return response

    def login(self, username: str, password: str) -> LoginResponse:
        """Log in and keep the returned token for later requests."""
        try:
            response = httpx.post(
                f"{self.base_url}/login",
                json={"username": username, "password": password},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Login failed: {e}")
        result = LoginResponse.model_validate(self._check(response, "Login").json())
        self.access_token = result.token
        return result

    def health(self) -> HealthResponse:
        try:
            response = httpx.get(f"{self.base_url}/health", timeout=self.timeout)
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Health check failed: {e}")
        return HealthResponse.model_validate(self._check(response, "Health check").json())

    def whoami(self) -> AuthContextResponse:
        try:
            response = httpx.get(f"{self.base_url}/api/me", headers=self._headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Error: {e}")
        return AuthContextResponse.model_validate(self._check(response, "Identity lookup").json())

    def upload_file(
        self,
        filename: str,
        data: bytes | IO[bytes],
        mime: str | None = None,
        folder: str | None = None,
    ) -> FileRecord:
        """
        Upload one file.

        Args:
            filename (str): Original file name; its extension decides the stored type.
            data (bytes | IO[bytes]): File content or an open binary stream.
            mime (str, optional): Content type of the part.
            folder (str, optional): Subfolder inside the client's storage root.
        """
        files = {"file": (filename, data, mime or "application/octet-stream")}
        form = {"folder": folder} if folder else None
        try:
            r = httpx.post(
                f"{self.base_url}/api/files/upload",
                files=files,
                data=form,
                headers=self._headers,
                timeout=None,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Upload failed: {e}")
        return FileRecord.model_validate(self._check(r, "Upload").json()["data"])

    def download_file(self, file_id: str, byte_range: tuple[int, int] | None = None) -> bytes:
        """
        Download a file, or the inclusive ``(start, end)`` slice of it.
        """
        headers = self._headers
        if byte_range is not None:
            start, end = byte_range
            headers["Range"] = f"bytes={start}-{end}"
        try:
            r = httpx.get(
                f"{self.base_url}/api/files/download/{file_id}",
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Download failed: {e}")
        return self._check(r, "Download").content

    def list_files(
        self,
        tenant: str | None = None,
        *,
        limit: int | None = None,
        offset: int | None = None,
        sort: str | None = None,
        order: str | None = None,
        text: str | None = None,
        folder: str | None = None,
    ) -> ListResponse:
        params: dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "sort": sort,
            "order": order,
            "filter": text,
            "folder": folder,
        }
        params = {k: v for k, v in params.items() if v is not None}
        try:
            r = httpx.get(
                f"{self.base_url}/api/files/list/{self._tenant_segment(tenant)}",
                params=params,
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"List files failed: {e}")
        return ListResponse.model_validate(self._check(r, "List files").json())

    def search_files(self, search: SearchRequest | str, tenant: str | None = None) -> ListResponse:
        if isinstance(search, str):
            search = SearchRequest(query=search)
        try:
            r = httpx.post(
                f"{self.base_url}/api/files/search/{self._tenant_segment(tenant)}",
                json=search.model_dump(mode="json", by_alias=True, exclude_none=True),
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Search failed: {e}")
        return ListResponse.model_validate(self._check(r, "Search").json())

    def get_metadata(self, file_id: str) -> FileRecord:
        try:
            r = httpx.get(
                f"{self.base_url}/api/files/metadata/{file_id}",
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Metadata lookup failed: {e}")
        return FileRecord.model_validate(self._check(r, "Metadata lookup").json()["data"])

    def delete_file(self, file_id: str) -> None:
        try:
            r = httpx.delete(
                f"{self.base_url}/api/files/{file_id}",
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Delete failed: {e}")
        self._check(r, "Delete")

    def bulk_delete(self, file_ids: list[str]) -> BulkDeleteResponse:
        """Delete several files; per-file failures are reported, not raised."""
        try:
            r = httpx.post(
                f"{self.base_url}/api/files/bulk-delete",
                json={"fileIds": file_ids},
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise FileServerClientError(f"Bulk delete failed: {e}")
        return BulkDeleteResponse.model_validate(self._check(r, "Bulk delete").json())
