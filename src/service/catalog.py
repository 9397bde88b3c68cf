"""
Filesystem-backed catalog: every listing is a fresh walk of the tenant's tree,
followed by filter -> folder -> search -> sort -> paginate.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, time as dt_time, timedelta, timezone
from pathlib import Path

from core.errors import EmptyQuery, ScanFailed
from schema.files import FileRecord, SearchRequest
from service.codec import record_from_path
from service.storage import is_allowed

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
DEFAULT_SORT = "uploadedAt"


@dataclass(frozen=True)
class Page:
    items: list[FileRecord]
    total: int


def _raise_scan_error(exc: OSError) -> None:
    raise ScanFailed(f"Error listing files: {exc}") from exc


def scan(root: Path, tenant: str, *, deadline: float | None = None) -> list[FileRecord]:
    """
    Walk *root* and rebuild a FileRecord for every file in it.

    A missing root is an empty tenant. Walk errors abort the scan with
    ScanFailed; so does passing *deadline* (a ``time.monotonic()`` value).
    """
    if not root.is_dir():
        return []

    records: list[FileRecord] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_scan_error):
        dirnames.sort()
        for name in sorted(filenames):
            if deadline is not None and time.monotonic() > deadline:
                raise ScanFailed("Error listing files: scan timed out")
            path = Path(dirpath) / name
            try:
                st = path.stat()
            except FileNotFoundError:
                # removed between listing and stat
                continue
            except OSError as exc:
                raise ScanFailed(f"Error listing files: {exc}") from exc
            records.append(record_from_path(path, root, tenant, st=st))
    return records


def _matches_text(record: FileRecord, needle: str) -> bool:
    return (
        needle in record.original_name.lower()
        or needle in record.file_name.lower()
        or needle in record.extension.lower()
    )


def filter_text(records: list[FileRecord], text: str | None) -> list[FileRecord]:
    if not text:
        return records
    needle = text.lower()
    return [r for r in records if _matches_text(r, needle)]


def filter_folder(records: list[FileRecord], folder: str | None) -> list[FileRecord]:
    """Exact folder match; ``""`` keeps only root-level files, ``None`` keeps all."""
    if folder is None:
        return records
    return [r for r in records if r.folder == folder]


def _day_start(day) -> datetime:
    return datetime.combine(day, dt_time.min, tzinfo=timezone.utc)


def apply_search(records: list[FileRecord], search: SearchRequest) -> list[FileRecord]:
    if not search.query.strip():
        raise EmptyQuery()

    needle = search.query.lower()
    date_from = _day_start(search.date_from) if search.date_from else None
    # inclusive of the whole end day
    date_to = _day_start(search.date_to) + timedelta(days=1) if search.date_to else None

    results = []
    for record in records:
        if not _matches_text(record, needle):
            continue
        if search.types and not is_allowed(record.mime_type, record.extension, search.types):
            continue
        if search.min_size is not None and record.size < search.min_size:
            continue
        if search.max_size is not None and record.size > search.max_size:
            continue
        if date_from is not None and record.uploaded_at < date_from:
            continue
        if date_to is not None and record.uploaded_at > date_to:
            continue
        results.append(record)
    return results


_SORT_KEYS = {
    "name": lambda r: r.original_name,
    "size": lambda r: r.size,
    "extension": lambda r: r.extension,
    "uploadedAt": lambda r: r.uploaded_at,
}


def sort_records(records: list[FileRecord], sort: str | None = None, order: str | None = None) -> list[FileRecord]:
    """Stable sort; unknown keys sort by upload time, anything but ``desc`` is ascending."""
    key = _SORT_KEYS.get(sort or DEFAULT_SORT, _SORT_KEYS[DEFAULT_SORT])
    return sorted(records, key=key, reverse=(order or "desc") == "desc")


def _as_int(value: int | str | None) -> int | None:
    if value is None or isinstance(value, int):
        return value
    try:
        return int(value.strip())
    except ValueError:
        return None


def paginate(
    records: list[FileRecord],
    limit: int | str | None = None,
    offset: int | str | None = None,
) -> Page:
    """Unparsable or out-of-range values fall back to limit 100 and offset 0."""
    limit = _as_int(limit)
    if limit is None or limit <= 0 or limit > MAX_LIMIT:
        limit = DEFAULT_LIMIT
    offset = max(_as_int(offset) or 0, 0)
    return Page(items=records[offset : offset + limit], total=len(records))


def list_files(
    records: list[FileRecord],
    *,
    text: str | None = None,
    folder: str | None = None,
    sort: str | None = None,
    order: str | None = None,
    limit: int | str | None = None,
    offset: int | str | None = None,
) -> Page:
    filtered = filter_folder(filter_text(records, text), folder)
    return paginate(sort_records(filtered, sort, order), limit, offset)


def search_files(records: list[FileRecord], search: SearchRequest) -> Page:
    matched = apply_search(records, search)
    return paginate(sort_records(matched, search.sort, search.order), search.limit, search.offset)
