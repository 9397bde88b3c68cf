from schema.files import (
    AuthContextResponse,
    BulkDeleteError,
    BulkDeleteRequest,
    BulkDeleteResponse,
    DeleteResponse,
    ErrorResponse,
    FileRecord,
    HealthResponse,
    ListResponse,
    LoginRequest,
    LoginResponse,
    MetadataResponse,
    SearchRequest,
    UploadResponse,
)

__all__ = [
    "AuthContextResponse",
    "BulkDeleteError",
    "BulkDeleteRequest",
    "BulkDeleteResponse",
    "DeleteResponse",
    "ErrorResponse",
    "FileRecord",
    "HealthResponse",
    "ListResponse",
    "LoginRequest",
    "LoginResponse",
    "MetadataResponse",
    "SearchRequest",
    "UploadResponse",
]
