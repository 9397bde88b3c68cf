from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileRecord(_CamelModel):
    """Snapshot of one stored file, rebuilt from the filesystem on every request."""

    file_id: str
    original_name: str
    file_name: str  # stored name: file_id + extension
    tenant: str = Field(alias="client")
    folder: str = ""
    size: int
    mime_type: str
    extension: str
    uploaded_at: datetime
    public_url: str = Field(alias="url")
    path: str = Field(default="", repr=False, exclude=True)  # server-side only
    content_hash: str | None = Field(default=None, alias="hash")


class SearchRequest(_CamelModel):
    query: str = ""
    types: list[str] = Field(default_factory=list)
    min_size: int | None = Field(default=None, ge=0)
    max_size: int | None = Field(default=None, ge=0)
    date_from: date | None = None
    date_to: date | None = None
    sort: str = "uploadedAt"
    order: str = "desc"
    limit: int | None = None
    offset: int | None = None


class BulkDeleteRequest(_CamelModel):
    file_ids: list[str]


class LoginRequest(_CamelModel):
    username: str
    password: str


class UploadResponse(_CamelModel):
    success: bool = True
    data: FileRecord
    message: str = "File uploaded successfully"


class ListResponse(_CamelModel):
    success: bool = True
    data: list[FileRecord]
    count: int


class MetadataResponse(_CamelModel):
    success: bool = True
    data: FileRecord


class DeleteResponse(_CamelModel):
    success: bool = True
    message: str = "File deleted successfully"
    file_id: str


class BulkDeleteError(_CamelModel):
    file_id: str
    error: str


class BulkDeleteResponse(_CamelModel):
    success: bool = True
    deleted_files: list[str]
    errors: list[BulkDeleteError]
    total: int
    deleted: int
    failed: int


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    code: int


class LoginResponse(_CamelModel):
    success: bool = True
    token: str
    message: str = "Login successful"
    expires_at: datetime


class AuthContextResponse(_CamelModel):
    client: str
    user_id: str | None = None
    requires_auth: bool


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "file-server"
    version: str
    uptime: str
