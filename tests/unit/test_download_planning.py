"""Unit tests for range parsing and download planning"""

import pytest

from fastlane.exceptions import RangeNotSatisfiableError
from fastlane.models.file_record import FileRecord
from fastlane.services.transfer_service import parse_range, plan_download


def make_record(size: int, name: str = "clip.mp4", content_type: str = "video/mp4") -> FileRecord:
    return FileRecord(
        id="file-1",
        display_name=name,
        storage_name=f"0-{name}",
        size_bytes=size,
        content_type=content_type,
        absolute_path=f"/tmp/0-{name}",
    )


class TestParseRange:
    """Test Range header resolution"""

    @pytest.mark.parametrize(
        "header,total,expected",
        [
            ("bytes=0-0", 5, (0, 0)),
            ("bytes=1-3", 5, (1, 3)),
            ("bytes=2-", 5, (2, 4)),
            ("bytes=0-4", 5, (0, 4)),
            ("bytes=-2", 5, (3, 4)),
            ("bytes=-10", 5, (0, 4)),
            ("BYTES = 1 - 3", 5, (1, 3)),
        ],
    )
    def test_satisfiable(self, header, total, expected):
        assert parse_range(header, total) == expected

    @pytest.mark.parametrize(
        "header,total",
        [
            ("bytes=3-1", 5),
            ("bytes=0-5", 5),
            ("bytes=5-", 5),
            ("bytes=-0", 5),
            ("bytes=-", 5),
            ("bytes=0-0", 0),
            ("bytes=-1", 0),
            ("items=0-1", 5),
            ("bytes=0-1,3-4", 5),
            ("garbage", 5),
        ],
    )
    def test_not_satisfiable(self, header, total):
        with pytest.raises(RangeNotSatisfiableError) as exc_info:
            parse_range(header, total)

        assert exc_info.value.status_code == 416
        assert exc_info.value.headers() == {"Content-Range": f"bytes */{total}"}


class TestPlanDownload:
    """Test the response plan for downloads"""

    def test_full_download(self):
        plan = plan_download(make_record(5), None)

        assert plan.status_code == 200
        assert (plan.start, plan.end, plan.length) == (0, 4, 5)
        assert plan.headers["Content-Length"] == "5"
        assert plan.headers["Content-Type"] == "video/mp4"
        assert plan.headers["Accept-Ranges"] == "bytes"
        assert plan.headers["X-Content-Type-Options"] == "nosniff"
        assert plan.headers["Cache-Control"] == "no-cache"
        assert "Content-Range" not in plan.headers

    def test_partial_download(self):
        plan = plan_download(make_record(5), "bytes=1-3")

        assert plan.status_code == 206
        assert plan.length == 3
        assert plan.headers["Content-Range"] == "bytes 1-3/5"
        assert plan.headers["Content-Length"] == "3"

    def test_empty_file(self):
        plan = plan_download(make_record(0), None)

        assert plan.status_code == 200
        assert plan.length == 0
        assert plan.headers["Content-Length"] == "0"

    def test_filename_is_percent_encoded(self):
        plan = plan_download(make_record(1, name="my photo é.jpg"), None)

        assert plan.headers["Content-Disposition"] == 'attachment; filename="my%20photo%20%C3%A9.jpg"'

    def test_empty_range_header_means_full_download(self):
        assert plan_download(make_record(5), "").status_code == 200

    def test_unsatisfiable_range_raises(self):
        with pytest.raises(RangeNotSatisfiableError):
            plan_download(make_record(5), "bytes=9-")
