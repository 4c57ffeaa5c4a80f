"""Transfer engine: streaming multipart ingestion and range-aware downloads"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiofiles
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from fastlane.config import Settings
from fastlane.exceptions import (
    PayloadTooLargeError,
    RangeNotSatisfiableError,
    TransferIOError,
    ValidationError,
)
from fastlane.models.file_record import FileRecord, PersistedUpload
from fastlane.services.activity_log import ActivityLog
from fastlane.utils.file_utils import format_bytes, get_safe_filename
from fastlane.utils.identifiers import make_storage_name
from fastlane.utils.logger import get_logger
from fastlane.utils.mime_types import DEFAULT_CONTENT_TYPE, guess_content_type

logger = get_logger(__name__)

UPLOAD_FIELD = "files"

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class UploadLimits:
    max_file_size: int
    max_files: int
    max_fields: int
    max_field_size: int
    max_field_name_size: int

    @classmethod
    def from_settings(cls, config: Settings) -> "UploadLimits":
        return cls(
            max_file_size=config.max_file_size,
            max_files=config.max_files,
            max_fields=config.max_fields,
            max_field_size=config.max_field_size,
            max_field_name_size=config.max_field_name_size,
        )


@dataclass
class _FilePart:
    display_name: str
    storage_name: str
    path: Path
    content_type: str
    handle: object = None
    size: int = 0


@dataclass
class _FieldPart:
    name: str
    value: bytearray = field(default_factory=bytearray)


class MultipartUpload:
    """
    Parses one multipart/form-data body and streams file parts to disk.

    The python-multipart parser is driven with chunks from the request body.
    Its callbacks only queue events; the events are then applied with async
    file writes, checking every limit before a byte is written.
    """

    def __init__(self, upload_dir: Path, limits: UploadLimits):
        self.upload_dir = Path(upload_dir)
        self.limits = limits
        self.fields: Dict[str, str] = {}
        self.completed: List[PersistedUpload] = []
        self._written: List[Path] = []
        self._events: List[Tuple] = []
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._headers: Dict[bytes, bytes] = {}
        self._part = None
        self._file_count = 0
        self._field_count = 0

    # Parser callbacks (synchronous)

    def _on_part_begin(self):
        self._events.append(("begin",))

    def _on_header_field(self, data: bytes, start: int, end: int):
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int):
        self._header_value += data[start:end]

    def _on_header_end(self):
        self._events.append(("header", bytes(self._header_field).lower(), bytes(self._header_value)))
        self._header_field.clear()
        self._header_value.clear()

    def _on_headers_finished(self):
        self._events.append(("headers_done",))

    def _on_part_data(self, data: bytes, start: int, end: int):
        self._events.append(("data", data[start:end]))

    def _on_part_end(self):
        self._events.append(("end",))

    async def receive(self, content_type: Optional[str], stream: AsyncIterator[bytes]) -> List[PersistedUpload]:
        """
        Consume the request body

        Returns:
            The file parts written to the upload directory, in body order

        Raises:
            ValidationError: Not a multipart body, or a file sent under another field
            PayloadTooLargeError: A file, field or count limit was exceeded
            TransferIOError: Disk failure or client disconnect
        """
        ctype, params = parse_options_header(content_type)
        if ctype != b"multipart/form-data":
            raise ValidationError("Expected a multipart/form-data upload")
        boundary = params.get(b"boundary")
        if not boundary:
            raise ValidationError("Missing multipart boundary")

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
        }
        parser = MultipartParser(boundary, callbacks)

        succeeded = False
        try:
            async for chunk in stream:
                parser.write(chunk)
                await self._apply_events()
            parser.finalize()
            await self._apply_events()
            if self._part is not None:
                raise ValidationError("Multipart body ended in the middle of a part")
            succeeded = True
        except MultipartParseError as e:
            raise ValidationError(f"Malformed multipart body: {e}") from e
        except ClientDisconnect as e:
            raise TransferIOError("Client disconnected during upload") from e
        except OSError as e:
            raise TransferIOError(f"Failed to write upload: {e}") from e
        finally:
            if not succeeded:
                await self._discard()

        return self.completed

    async def _apply_events(self):
        events, self._events = self._events, []
        for event in events:
            kind = event[0]
            if kind == "begin":
                self._headers = {}
                self._part = None
            elif kind == "header":
                self._headers[event[1]] = event[2]
            elif kind == "headers_done":
                await self._start_part()
            elif kind == "data":
                await self._write_data(event[1])
            elif kind == "end":
                await self._finish_part()

    async def _start_part(self):
        _, options = parse_options_header(self._headers.get(b"content-disposition"))
        raw_name = options.get(b"name", b"")
        if len(raw_name) > self.limits.max_field_name_size:
            raise PayloadTooLargeError("Field name too long")
        name = raw_name.decode("utf-8", errors="replace")

        raw_filename = options.get(b"filename")
        if raw_filename is None:
            self._field_count += 1
            if self._field_count > self.limits.max_fields:
                raise PayloadTooLargeError("Too many fields")
            self._part = _FieldPart(name=name)
            return

        if name != UPLOAD_FIELD:
            raise ValidationError(f"Unexpected field: {name}")
        self._file_count += 1
        if self._file_count > self.limits.max_files:
            raise PayloadTooLargeError(f"Too many files (limit {self.limits.max_files})")

        display_name = get_safe_filename(raw_filename.decode("utf-8", errors="replace"))
        part_type, _ = parse_options_header(self._headers.get(b"content-type"))
        content_type = part_type.decode("latin-1") if part_type else ""
        if not content_type or content_type == DEFAULT_CONTENT_TYPE:
            content_type = guess_content_type(display_name)

        storage_name = make_storage_name(display_name)
        part = _FilePart(
            display_name=display_name,
            storage_name=storage_name,
            path=self.upload_dir / storage_name,
            content_type=content_type,
        )
        self._written.append(part.path)
        part.handle = await aiofiles.open(part.path, "wb")
        self._part = part

    async def _write_data(self, data: bytes):
        part = self._part
        if isinstance(part, _FilePart):
            if part.size + len(data) > self.limits.max_file_size:
                raise PayloadTooLargeError(
                    f"File too large: {part.display_name} exceeds {format_bytes(self.limits.max_file_size)}"
                )
            await part.handle.write(data)
            part.size += len(data)
        elif isinstance(part, _FieldPart):
            if len(part.value) + len(data) > self.limits.max_field_size:
                raise PayloadTooLargeError(f"Field value too large: {part.name}")
            part.value += data

    async def _finish_part(self):
        part, self._part = self._part, None
        if isinstance(part, _FilePart):
            await part.handle.close()
            part.handle = None
            self.completed.append(
                PersistedUpload(
                    display_name=part.display_name,
                    storage_name=part.storage_name,
                    path=str(part.path),
                    size_bytes=part.size,
                    content_type=part.content_type,
                )
            )
        elif isinstance(part, _FieldPart):
            self.fields[part.name] = part.value.decode("utf-8", errors="replace")

    async def _discard(self):
        """Remove everything this request wrote"""
        part = self._part
        if isinstance(part, _FilePart) and part.handle is not None:
            try:
                await part.handle.close()
            except OSError as e:
                logger.warning(f"Failed to close partial upload {part.path}: {e}")
        self._part = None

        for path in self._written:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to remove partial upload {path}: {e}")
        self.completed = []


@dataclass(frozen=True)
class DownloadPlan:
    """Status, headers and inclusive byte span decided before any byte is sent"""

    status_code: int
    headers: Dict[str, str]
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1 if self.end >= self.start else 0


def parse_range(range_header: str, total: int) -> Tuple[int, int]:
    """
    Resolve a ``Range`` header against a file of ``total`` bytes

    Supports ``bytes=a-b``, ``bytes=a-`` and ``bytes=-n``.

    Returns:
        Inclusive (start, end)

    Raises:
        RangeNotSatisfiableError: Malformed header, start > end, or end >= total
    """
    match = _RANGE_RE.match(range_header or "")
    if not match:
        raise RangeNotSatisfiableError(total)

    first, last = match.group(1), match.group(2)
    if not first and not last:
        raise RangeNotSatisfiableError(total)

    if not first:
        suffix = int(last)
        if suffix == 0 or total == 0:
            raise RangeNotSatisfiableError(total)
        return max(total - suffix, 0), total - 1

    start = int(first)
    end = int(last) if last else total - 1
    if start > end or end > total - 1:
        raise RangeNotSatisfiableError(total)
    return start, end


def plan_download(record: FileRecord, range_header: Optional[str]) -> DownloadPlan:
    """Decide the response for a download; pure function of the request and metadata"""
    total = record.size_bytes
    headers = {
        "Content-Type": record.content_type or DEFAULT_CONTENT_TYPE,
        "Content-Disposition": f'attachment; filename="{quote(record.display_name)}"',
        "X-Content-Type-Options": "nosniff",
        "Cache-Control": "no-cache",
        "Accept-Ranges": "bytes",
    }

    if range_header:
        start, end = parse_range(range_header, total)
        headers["Content-Range"] = f"bytes {start}-{end}/{total}"
        headers["Content-Length"] = str(end - start + 1)
        return DownloadPlan(status_code=206, headers=headers, start=start, end=end)

    headers["Content-Length"] = str(total)
    return DownloadPlan(status_code=200, headers=headers, start=0, end=total - 1)


class TransferService:
    """Upload ingestion into the upload directory and streamed downloads out of it"""

    def __init__(
        self,
        upload_dir: Path,
        activity_log: ActivityLog,
        limits: UploadLimits,
        chunk_size: int = 4 * 1024 * 1024,
    ):
        self.upload_dir = Path(upload_dir)
        self.activity_log = activity_log
        self.limits = limits
        self.chunk_size = chunk_size

    async def receive_upload(
        self, content_type: Optional[str], stream: AsyncIterator[bytes]
    ) -> List[PersistedUpload]:
        upload = MultipartUpload(self.upload_dir, self.limits)
        try:
            return await upload.receive(content_type, stream)
        except TransferIOError as e:
            self.activity_log.log(f"Upload error: {e.message}")
            raise

    async def open_span(self, record: FileRecord, plan: DownloadPlan):
        """Open and position the file; failures here still become a JSON 500"""
        try:
            handle = await aiofiles.open(record.absolute_path, "rb")
        except OSError as e:
            self.activity_log.log(f"Download error: {e}")
            raise TransferIOError("Download failed") from e

        try:
            if plan.start:
                await handle.seek(plan.start)
        except OSError as e:
            await handle.close()
            self.activity_log.log(f"Download error: {e}")
            raise TransferIOError("Download failed") from e
        return handle

    async def stream_span(self, handle, record: FileRecord, plan: DownloadPlan) -> AsyncIterator[bytes]:
        """
        Yield the planned span. Headers are already committed when this runs,
        so errors are logged and re-raised to drop the connection.
        """
        remaining = plan.length
        try:
            while remaining > 0:
                data = await handle.read(min(self.chunk_size, remaining))
                if not data:
                    raise OSError(f"{record.display_name} ended {remaining} bytes early")
                remaining -= len(data)
                yield data
        except OSError as e:
            label = "Download error (range)" if plan.status_code == 206 else "Download error"
            self.activity_log.log(f"{label}: {e}")
            raise
        finally:
            await handle.close()

        self.activity_log.log(f"File downloaded: {record.display_name}")
