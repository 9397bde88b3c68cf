from __future__ import annotations

import hashlib
import logging
import mimetypes
import os
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

import filetype

from core.errors import StorageWriteFailed
from core.settings import Settings
from core.tenants import TenantPolicy
from service.codec import DEFAULT_MIME

logger = logging.getLogger(__name__)

MAX_CHUNK = 1024 * 1024  # 1 MiB
SNIFF_BYTES = 8192  # header bytes handed to filetype


def ensure_upload_root(settings: Settings) -> Path:
    root = settings.upload_root
    root.mkdir(parents=True, exist_ok=True)
    settings.staging_dir.mkdir(parents=True, exist_ok=True)
    return root


def tenant_root(settings: Settings, policy: TenantPolicy) -> Path:
    return (settings.upload_root / policy.storage_root).resolve()


def effective_max_bytes(settings: Settings, policy: TenantPolicy) -> int:
    return min(policy.max_file_size, settings.MAX_FILE_SIZE)


def sniff_mime(fp: BinaryIO, filename: str) -> str:
    """
    MIME from the filename extension; when the extension is unknown, fall back to
    the file signature. Resets the file pointer back to 0.
    """
    ext_mime = mimetypes.guess_type(filename or "")[0]
    if ext_mime:
        return ext_mime

    head = fp.read(SNIFF_BYTES)
    fp.seek(0)
    kind = filetype.guess(head)
    if kind and kind.mime:
        return kind.mime
    return DEFAULT_MIME


def is_allowed(mime: str, extension: str, allowed_types: Iterable[str]) -> bool:
    """
    Match a file against a tenant's allowed types:
    ``*/*`` allows anything, ``image/*`` matches by MIME prefix, ``text/plain``
    matches exactly, anything without a slash is an extension (dot optional).
    An empty list places no restriction.
    """
    allowed_types = list(allowed_types)
    if not allowed_types:
        return True
    mime = (mime or "").lower()
    extension = (extension or "").lower()
    for allowed in allowed_types:
        allowed = allowed.strip().lower()
        if allowed in {"*/*", "*"}:
            return True
        if "/" in allowed:
            if allowed == mime:
                return True
            if allowed.endswith("/*") and mime.startswith(allowed[:-1]):
                return True
        elif extension and allowed in {extension, extension.lstrip(".")}:
            return True
    return False


def write_stream_with_hash(
    staging_dir: Path,
    target_dir: Path,
    stored_name: str,
    src: BinaryIO,
) -> tuple[Path, int, str]:
    """
    Copy *src* into ``target_dir/stored_name`` computing SHA-256 in the same pass.

    Bytes land in a staging file first and are moved into place once complete,
    so a directory scan never sees a half-written file.

    Returns:
        Tuple of (final path, bytes written, hex digest)
    """
    staging_dir.mkdir(parents=True, exist_ok=True)
    tmp = staging_dir / f".{stored_name}.tmp"
    final = target_dir / stored_name
    h = hashlib.sha256()
    total = 0
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with open(tmp, "wb") as dst:
            for chunk in iter(lambda: src.read(MAX_CHUNK), b""):
                h.update(chunk)
                dst.write(chunk)
                total += len(chunk)
            dst.flush()
            os.fsync(dst.fileno())
        os.replace(tmp, final)
    except OSError as exc:
        logger.error("Failed writing %s: %s", final, exc)
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove partial upload %s", tmp, exc_info=True)
        raise StorageWriteFailed(f"Error saving file: {exc}") from exc
    return final, total, h.hexdigest()
