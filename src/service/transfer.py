"""Byte-range parsing, chunked file streaming and the capped upload body reader."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from starlette.types import Message, Receive

from core.errors import FileTooLarge, RangeNotSatisfiable

logger = logging.getLogger(__name__)

STREAM_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_size}"


def parse_range(header: str, file_size: int) -> ByteRange:
    """
    Parse a single ``bytes=start-end`` clause. Only the first clause of a
    multi-range header is honoured. A missing start means 0, a missing end
    means the last byte.

    Raises:
        RangeNotSatisfiable: malformed header or a range outside the file.
    """
    header = header.strip()
    if not header.startswith("bytes="):
        raise RangeNotSatisfiable(file_size)

    clause = header[len("bytes=") :].split(",", 1)[0].strip()
    start_text, sep, end_text = clause.partition("-")
    if not sep:
        raise RangeNotSatisfiable(file_size)

    try:
        start = int(start_text) if start_text.strip() else 0
        end = int(end_text) if end_text.strip() else file_size - 1
    except ValueError:
        raise RangeNotSatisfiable(file_size) from None

    if start < 0 or start >= file_size or end < start or end >= file_size:
        raise RangeNotSatisfiable(file_size)
    return ByteRange(start=start, end=end)


def iter_file(path: Path, start: int = 0, length: int | None = None) -> Iterator[bytes]:
    """Yield *length* bytes of *path* from *start* (the rest of the file when None)."""
    remaining = length
    try:
        with open(path, "rb") as fh:
            fh.seek(start)
            while remaining is None or remaining > 0:
                size = STREAM_CHUNK if remaining is None else min(STREAM_CHUNK, remaining)
                chunk = fh.read(size)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk
    except OSError:
        # headers are already sent; the connection is dropped
        logger.exception("Error streaming %s", path)
        raise


def capped_receive(receive: Receive, max_bytes: int) -> Receive:
    """Wrap an ASGI ``receive`` so the request body can never exceed *max_bytes*."""
    received = 0

    async def _receive() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise FileTooLarge(f"Request body too large. Maximum: {max_bytes} bytes")
        return message

    return _receive
