"""Error taxonomy shared by the middleware, routers and storage helpers."""

from __future__ import annotations

from typing import Any


class FileServerError(Exception):
    """Base error; carries the HTTP status used to render the error envelope."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.status_code}


class InvalidTenant(FileServerError):
    status_code = 400
    default_message = "Invalid client"


class AuthRequired(FileServerError):
    status_code = 401
    default_message = "Authentication token required"


class InvalidToken(FileServerError):
    status_code = 401
    default_message = "Invalid token"


class InvalidCredentials(FileServerError):
    status_code = 401
    default_message = "Invalid username or password"


class PermissionDenied(FileServerError):
    status_code = 403
    default_message = "You are not allowed to delete this file"


class FileNotFound(FileServerError):
    status_code = 404
    default_message = "File not found"


class DuplicateFileId(FileServerError):
    status_code = 409
    default_message = "File id is ambiguous"


class FileTooLarge(FileServerError):
    status_code = 400
    default_message = "File too large"


class UnsupportedType(FileServerError):
    status_code = 400
    default_message = "File type not allowed"


class EmptyQuery(FileServerError):
    status_code = 400
    default_message = "Search query is required"


class ValidationError(FileServerError):
    status_code = 400
    default_message = "Invalid request"


class RangeNotSatisfiable(FileServerError):
    status_code = 416
    default_message = "Requested range not satisfiable"

    def __init__(self, file_size: int, message: str | None = None) -> None:
        self.file_size = file_size
        super().__init__(message)


class ScanFailed(FileServerError):
    status_code = 500
    default_message = "Error listing files"


class StorageWriteFailed(FileServerError):
    status_code = 500
    default_message = "Error saving file"
