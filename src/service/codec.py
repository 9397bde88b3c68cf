"""
Mapping between file ids, stored names, folders and on-disk paths.

There is no metadata index: a stored file is named ``<uuid><ext>`` and every
other attribute is recovered from the name and a ``stat`` call.
"""

from __future__ import annotations

import glob
import logging
import mimetypes
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from core.errors import DuplicateFileId, FileNotFound, ValidationError
from schema.files import FileRecord

logger = logging.getLogger(__name__)

FILE_ID_LENGTH = 36
MAX_FOLDER_LENGTH = 50
DEFAULT_MIME = "application/octet-stream"
GENERIC_NAME = "file"


def new_file_id() -> str:
    return str(uuid.uuid4())


def split_extension(filename: str) -> str:
    """Extension of the base name including the dot, case preserved (``""`` if none)."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def mime_for_extension(extension: str) -> str:
    if not extension:
        return DEFAULT_MIME
    return mimetypes.guess_type(f"file{extension.lower()}")[0] or DEFAULT_MIME


def stored_name_for(file_id: str, original_filename: str) -> str:
    return file_id + split_extension(original_filename)


def sanitize_folder(folder: str | None) -> str:
    """Spaces to underscores, drop ``..``, cap at 50 chars, no leading/trailing separators."""
    if not folder:
        return ""
    cleaned = folder.replace(" ", "_").replace("..", "")[:MAX_FOLDER_LENGTH]
    cleaned = cleaned.replace("\\", "/").strip("/")
    return "/".join(part for part in cleaned.split("/") if part and part != ".")


def folder_path(root: Path, folder: str) -> Path:
    """Directory for *folder* under *root*; refuses anything escaping the root."""
    target = (root / folder).resolve() if folder else root.resolve()
    if not target.is_relative_to(root.resolve()):
        raise ValidationError(f"Invalid folder: {folder}")
    return target


def public_url(tenant: str, folder: str, stored_name: str) -> str:
    if folder:
        return f"/static/{tenant}/{folder}/{stored_name}"
    return f"/static/{tenant}/{stored_name}"


def _is_uuid_shaped(stored_name: str) -> bool:
    return len(stored_name) > FILE_ID_LENGTH and stored_name[FILE_ID_LENGTH] == "."


def decode_file_id(stored_name: str) -> str:
    if _is_uuid_shaped(stored_name):
        return stored_name[:FILE_ID_LENGTH]
    extension = split_extension(stored_name)
    return stored_name[: len(stored_name) - len(extension)] if extension else stored_name


def recover_original_name(stored_name: str) -> str:
    # Original names are not persisted; uuid-named files get a generic name.
    if _is_uuid_shaped(stored_name):
        return GENERIC_NAME + split_extension(stored_name)
    return stored_name


def record_from_path(
    path: Path,
    root: Path,
    tenant: str,
    *,
    st: os.stat_result | None = None,
    content_hash: str | None = None,
    original_name: str | None = None,
) -> FileRecord:
    """Rebuild a FileRecord for *path* from its name and a live stat."""
    st = st or path.stat()
    stored_name = path.name
    extension = split_extension(stored_name)
    relative_parent = path.parent.relative_to(root)
    folder = "" if relative_parent == Path(".") else relative_parent.as_posix()
    return FileRecord(
        file_id=decode_file_id(stored_name),
        original_name=original_name or recover_original_name(stored_name),
        file_name=stored_name,
        tenant=tenant,
        folder=folder,
        size=st.st_size,
        mime_type=mime_for_extension(extension),
        extension=extension,
        uploaded_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        public_url=public_url(tenant, folder, stored_name),
        path=str(path),
        content_hash=content_hash,
    )


def resolve_file(root: Path, file_id: str) -> Path:
    """
    Locate ``root/**/<file_id>.*``.

    Raises:
        FileNotFound: no match (or an id that could never name a stored file).
        DuplicateFileId: the same id exists in more than one place.
    """
    if not file_id or "/" in file_id or "\\" in file_id or file_id in {".", ".."}:
        raise FileNotFound(f"File not found: {file_id}")

    pattern = os.path.join(glob.escape(str(root)), "**", f"{glob.escape(file_id)}.*")
    found = glob.glob(pattern, recursive=True, include_hidden=True)
    matches = sorted(Path(p) for p in found if os.path.isfile(p))
    if not matches:
        raise FileNotFound(f"File not found: {file_id}")
    if len(matches) > 1:
        logger.warning("File id %s matches %d files under %s", file_id, len(matches), root)
        raise DuplicateFileId(f"File id {file_id} matches {len(matches)} files")
    return matches[0]
