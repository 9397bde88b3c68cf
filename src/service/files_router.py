## src/service/files_router.py

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from auth.context import AuthContext
from core.errors import (
    EmptyQuery,
    FileNotFound,
    FileServerError,
    FileTooLarge,
    PermissionDenied,
    StorageWriteFailed,
    UnsupportedType,
    ValidationError,
)
from core.settings import Settings
from core.tenants import TenantPolicy, TenantRegistry
from schema.files import (
    BulkDeleteError,
    BulkDeleteRequest,
    BulkDeleteResponse,
    DeleteResponse,
    FileRecord,
    ListResponse,
    MetadataResponse,
    SearchRequest,
    UploadResponse,
)
from service import catalog
from service.codec import (
    folder_path,
    new_file_id,
    record_from_path,
    resolve_file,
    sanitize_folder,
    split_extension,
    stored_name_for,
)
from service.dependencies import (
    get_app_settings,
    get_auth_context,
    get_delete_policy,
    get_registry,
    get_tenant_policy,
)
from service.permissions import DeletePolicy
from service.storage import (
    effective_max_bytes,
    is_allowed,
    sniff_mime,
    tenant_root,
    write_stream_with_hash,
)
from service.transfer import capped_receive, iter_file, parse_range

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

# stored content never changes: ids are not reused
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"
MAX_BULK_DELETE = 100
# room for multipart boundaries, part headers and the folder field
FORM_OVERHEAD = 64 * 1024

Context = Annotated[AuthContext, Depends(get_auth_context)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Registry = Annotated[TenantRegistry, Depends(get_registry)]
Policy = Annotated[TenantPolicy, Depends(get_tenant_policy)]


def _scan_tenant(settings: Settings, registry: TenantRegistry, tenant: str) -> list[FileRecord]:
    policy = registry.lookup(tenant)
    deadline = None
    if settings.SCAN_TIMEOUT_SECONDS:
        deadline = time.monotonic() + settings.SCAN_TIMEOUT_SECONDS
    return catalog.scan(tenant_root(settings, policy), tenant, deadline=deadline)


def _locate(settings: Settings, registry: TenantRegistry, tenant: str, file_id: str) -> FileRecord:
    """Resolve *file_id* in the tenant's tree and stat it."""
    root = tenant_root(settings, registry.lookup(tenant))
    path = resolve_file(root, file_id)
    try:
        return record_from_path(path, root, tenant)
    except FileNotFoundError:
        raise FileNotFound(f"File does not exist on the filesystem: {file_id}") from None


def _content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{quoted}"


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def _store_upload(
    settings: Settings,
    policy: TenantPolicy,
    tenant: str,
    upload: UploadFile,
    folder: str,
    max_bytes: int,
) -> FileRecord:
    if _upload_size(upload) > max_bytes:
        raise FileTooLarge(f"File too large. Maximum: {max_bytes} bytes")

    filename = (upload.filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    extension = split_extension(filename)
    mime = sniff_mime(upload.file, filename)
    if not is_allowed(mime, extension, policy.allowed_types):
        raise UnsupportedType(f"File type not allowed: {mime}")

    root = tenant_root(settings, policy)
    target_dir = folder_path(root, folder)
    stored_name = stored_name_for(new_file_id(), filename)

    upload.file.seek(0)
    path, written, digest = write_stream_with_hash(settings.staging_dir, target_dir, stored_name, upload.file)
    logger.info("Stored %s (%d bytes) for client %s", path, written, tenant)
    return record_from_path(path, root, tenant, content_hash=digest, original_name=filename or None)


@router.post(
    "/upload",
    status_code=201,
    response_model=UploadResponse,
    response_model_exclude_none=True,
)
async def upload_file(request: Request, context: Context, settings: AppSettings, policy: Policy):
    max_bytes = effective_max_bytes(settings, policy)

    body_cap = max_bytes + FORM_OVERHEAD
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > body_cap:
        raise FileTooLarge(f"File too large. Maximum: {max_bytes} bytes")

    # the body is read through a counter so oversized uploads stop mid-stream
    capped = Request(request.scope, capped_receive(request.receive, body_cap))
    async with capped.form() as form:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ValidationError("File not found in form field 'file'")
        raw_folder = form.get("folder")
        folder = sanitize_folder(raw_folder if isinstance(raw_folder, str) else None)

        record = await run_in_threadpool(
            _store_upload, settings, policy, context.tenant_id, upload, folder, max_bytes
        )

    return UploadResponse(data=record)


@router.get("/download/{file_id}")
def download_file(
    file_id: str,
    context: Context,
    settings: AppSettings,
    registry: Registry,
    range_header: Annotated[str | None, Header(alias="Range")] = None,
) -> StreamingResponse:
    record = _locate(settings, registry, context.tenant_id, file_id)
    path = Path(record.path)
    headers = {
        "Content-Disposition": _content_disposition(record.original_name),
        "Cache-Control": IMMUTABLE_CACHE,
        "Accept-Ranges": "bytes",
    }

    if not range_header:
        headers["Content-Length"] = str(record.size)
        return StreamingResponse(iter_file(path), media_type=record.mime_type, headers=headers)

    byte_range = parse_range(range_header, record.size)
    headers["Content-Range"] = byte_range.content_range(record.size)
    headers["Content-Length"] = str(byte_range.length)
    return StreamingResponse(
        iter_file(path, byte_range.start, byte_range.length),
        status_code=206,
        media_type=record.mime_type,
        headers=headers,
    )


@router.get("/list/{tenant}", response_model=ListResponse, response_model_exclude_none=True)
def list_files(
    tenant: str,
    response: Response,
    context: Context,
    settings: AppSettings,
    registry: Registry,
    limit: str | None = None,
    offset: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    text: Annotated[str | None, Query(alias="filter")] = None,
    folder: str | None = None,
):
    # the middleware resolved and validated the tenant from the same path segment
    records = _scan_tenant(settings, registry, context.tenant_id)
    page = catalog.list_files(
        records,
        text=text,
        folder=folder,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(page.total)
    return ListResponse(data=page.items, count=page.total)


@router.post("/search/{tenant}", response_model=ListResponse, response_model_exclude_none=True)
def search_files(
    tenant: str,
    search: SearchRequest,
    response: Response,
    context: Context,
    settings: AppSettings,
    registry: Registry,
):
    if not search.query.strip():
        raise EmptyQuery()
    records = _scan_tenant(settings, registry, context.tenant_id)
    page = catalog.search_files(records, search)
    response.headers["X-Total-Count"] = str(page.total)
    return ListResponse(data=page.items, count=page.total)


@router.get("/metadata/{file_id}", response_model=MetadataResponse, response_model_exclude_none=True)
def get_metadata(file_id: str, context: Context, settings: AppSettings, registry: Registry):
    return MetadataResponse(data=_locate(settings, registry, context.tenant_id, file_id))


def _delete_one(
    settings: Settings,
    registry: TenantRegistry,
    context: AuthContext,
    delete_policy: DeletePolicy,
    file_id: str,
) -> None:
    record = _locate(settings, registry, context.tenant_id, file_id)
    if not delete_policy.can_delete(context, record):
        raise PermissionDenied()
    try:
        os.remove(record.path)
    except FileNotFoundError:
        raise FileNotFound(f"File does not exist on the filesystem: {file_id}") from None
    except OSError as exc:
        raise StorageWriteFailed(f"Error deleting file: {exc}") from exc
    logger.info("Deleted %s for client %s (user=%s)", record.path, context.tenant_id, context.user_id)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete(
    body: BulkDeleteRequest,
    context: Context,
    settings: AppSettings,
    registry: Registry,
    delete_policy: Annotated[DeletePolicy, Depends(get_delete_policy)],
):
    if not body.file_ids:
        raise ValidationError("File id list is empty")
    if len(body.file_ids) > MAX_BULK_DELETE:
        raise ValidationError(f"At most {MAX_BULK_DELETE} files per request")

    deleted: list[str] = []
    errors: list[BulkDeleteError] = []
    for file_id in body.file_ids:
        try:
            _delete_one(settings, registry, context, delete_policy, file_id)
        except FileServerError as exc:
            errors.append(BulkDeleteError(file_id=file_id, error=exc.message))
            continue
        deleted.append(file_id)

    return BulkDeleteResponse(
        deleted_files=deleted,
        errors=errors,
        total=len(body.file_ids),
        deleted=len(deleted),
        failed=len(errors),
    )


@router.delete("/{file_id}", response_model=DeleteResponse)
def delete_file(
    file_id: str,
    context: Context,
    settings: AppSettings,
    registry: Registry,
    delete_policy: Annotated[DeletePolicy, Depends(get_delete_policy)],
):
    _delete_one(settings, registry, context, delete_policy, file_id)
    return DeleteResponse(file_id=file_id)
