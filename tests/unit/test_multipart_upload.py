"""Unit tests for streaming multipart ingestion"""

from typing import AsyncIterator, Iterable, List, Optional, Tuple

import pytest
from starlette.requests import ClientDisconnect

from fastlane.exceptions import PayloadTooLargeError, TransferIOError, ValidationError
from fastlane.services.activity_log import ActivityLog
from fastlane.services.transfer_service import MultipartUpload, TransferService, UploadLimits

BOUNDARY = "----fastlaneboundary"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"

# (field name, filename or None, content type or None, payload)
Part = Tuple[str, Optional[str], Optional[str], bytes]


def build_body(parts: Iterable[Part]) -> bytes:
    body = b""
    for name, filename, content_type, payload in parts:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += f"--{BOUNDARY}\r\n".encode()
        body += f"Content-Disposition: {disposition}\r\n".encode()
        if content_type:
            body += f"Content-Type: {content_type}\r\n".encode()
        body += b"\r\n" + payload + b"\r\n"
    body += f"--{BOUNDARY}--\r\n".encode()
    return body


async def stream_of(body: bytes, chunk_size: int = 7) -> AsyncIterator[bytes]:
    """Feed the body in small chunks so parts straddle chunk boundaries"""
    for i in range(0, len(body), chunk_size):
        yield body[i:i + chunk_size]


async def disconnecting_stream(body: bytes) -> AsyncIterator[bytes]:
    yield body[: len(body) // 2]
    raise ClientDisconnect()


def limits(**overrides) -> UploadLimits:
    values = dict(
        max_file_size=1024,
        max_files=3,
        max_fields=5,
        max_field_size=64,
        max_field_name_size=32,
    )
    values.update(overrides)
    return UploadLimits(**values)


def stored(upload_dir) -> List[str]:
    return sorted(p.name for p in upload_dir.iterdir())


class TestMultipartUpload:
    """Test MultipartUpload.receive"""

    @pytest.mark.asyncio
    async def test_files_are_written_in_body_order(self, upload_dir):
        body = build_body(
            [
                ("files", "a.txt", "text/plain", b"hello"),
                ("note", None, None, b"from my phone"),
                ("files", "b.bin", None, bytes(range(256)) * 3),
            ]
        )
        upload = MultipartUpload(upload_dir, limits())

        completed = await upload.receive(CONTENT_TYPE, stream_of(body))

        assert [u.display_name for u in completed] == ["a.txt", "b.bin"]
        assert completed[0].size_bytes == 5
        assert completed[0].content_type == "text/plain"
        assert completed[1].content_type == "application/octet-stream"
        with open(completed[1].path, "rb") as f:
            assert f.read() == bytes(range(256)) * 3
        assert upload.fields == {"note": "from my phone"}
        assert len(stored(upload_dir)) == 2

    @pytest.mark.asyncio
    async def test_missing_part_type_is_guessed_from_name(self, upload_dir):
        body = build_body([("files", "photo.JPG", None, b"\xff\xd8")])

        completed = await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

        assert completed[0].content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_client_path_is_stripped(self, upload_dir):
        body = build_body([("files", "../../secret.txt", "text/plain", b"x")])

        completed = await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

        assert completed[0].display_name == "secret.txt"
        assert completed[0].storage_name.endswith("-secret.txt")
        assert stored(upload_dir) == [completed[0].storage_name]

    @pytest.mark.asyncio
    async def test_empty_file(self, upload_dir):
        body = build_body([("files", "empty.txt", "text/plain", b"")])

        completed = await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

        assert completed[0].size_bytes == 0

    @pytest.mark.asyncio
    async def test_file_too_large_leaves_nothing_behind(self, upload_dir):
        body = build_body(
            [
                ("files", "ok.txt", "text/plain", b"small"),
                ("files", "big.bin", None, b"x" * 2048),
            ]
        )

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

        assert "big.bin" in exc_info.value.message
        assert stored(upload_dir) == []

    @pytest.mark.asyncio
    async def test_too_many_files(self, upload_dir):
        body = build_body([("files", f"f{i}.txt", "text/plain", b"x") for i in range(3)])

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await MultipartUpload(upload_dir, limits(max_files=2)).receive(CONTENT_TYPE, stream_of(body))

        assert exc_info.value.message == "Too many files (limit 2)"
        assert stored(upload_dir) == []

    @pytest.mark.asyncio
    async def test_too_many_fields(self, upload_dir):
        body = build_body([(f"field{i}", None, None, b"v") for i in range(3)])

        with pytest.raises(PayloadTooLargeError):
            await MultipartUpload(upload_dir, limits(max_fields=2)).receive(CONTENT_TYPE, stream_of(body))

    @pytest.mark.asyncio
    async def test_field_value_too_large(self, upload_dir):
        body = build_body([("note", None, None, b"v" * 100)])

        with pytest.raises(PayloadTooLargeError):
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

    @pytest.mark.asyncio
    async def test_field_name_too_long(self, upload_dir):
        body = build_body([("n" * 40, None, None, b"v")])

        with pytest.raises(PayloadTooLargeError):
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

    @pytest.mark.asyncio
    async def test_file_under_other_field_is_rejected(self, upload_dir):
        body = build_body([("avatar", "me.png", "image/png", b"png")])

        with pytest.raises(ValidationError) as exc_info:
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(body))

        assert exc_info.value.message == "Unexpected field: avatar"
        assert stored(upload_dir) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content_type",
        [None, "application/json", "multipart/form-data"],
    )
    async def test_non_multipart_body_is_rejected(self, upload_dir, content_type):
        with pytest.raises(ValidationError):
            await MultipartUpload(upload_dir, limits()).receive(content_type, stream_of(b""))

    @pytest.mark.asyncio
    async def test_truncated_body_is_rejected(self, upload_dir):
        body = build_body([("files", "a.txt", "text/plain", b"hello world")])
        truncated = body[: body.index(b"hello") + 5]

        with pytest.raises(ValidationError):
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, stream_of(truncated))

        assert stored(upload_dir) == []

    @pytest.mark.asyncio
    async def test_client_disconnect_discards_partial_file(self, upload_dir):
        body = build_body([("files", "a.bin", None, b"x" * 512)])

        with pytest.raises(TransferIOError):
            await MultipartUpload(upload_dir, limits()).receive(CONTENT_TYPE, disconnecting_stream(body))

        assert stored(upload_dir) == []


class TestTransferServiceUpload:
    """Test TransferService.receive_upload logging"""

    @pytest.mark.asyncio
    async def test_disconnect_is_logged(self, upload_dir):
        activity_log = ActivityLog()
        service = TransferService(upload_dir, activity_log, limits())
        body = build_body([("files", "a.bin", None, b"x" * 512)])

        with pytest.raises(TransferIOError):
            await service.receive_upload(CONTENT_TYPE, disconnecting_stream(body))

        assert activity_log.entries()[-1].message == "Upload error: Client disconnected during upload"
