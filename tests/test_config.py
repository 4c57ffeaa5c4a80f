"""Unit tests for configuration"""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError


def test_defaults():
    """Test the transfer defaults"""
    from fastlane.config import Settings
    settings = Settings()

    assert settings.port == 0
    assert settings.max_file_size == 10 * 1024 * 1024 * 1024
    assert settings.max_files == 50
    assert settings.max_fields == 100
    assert settings.max_field_size == 10 * 1024 * 1024
    assert settings.max_field_name_size == 1024
    assert settings.download_chunk_size == 4 * 1024 * 1024
    assert settings.activity_log_capacity == 100
    assert settings.device_stale_after_seconds == 300
    assert settings.device_sweep_interval_seconds == 60
    assert settings.rejected_request_grace_seconds == 5.0
    assert settings.require_approval is False
    assert settings.clear_on_shutdown is False
    assert settings.upload_dir == Path.home() / ".fastlane" / "uploads"


def test_env_prefix_overrides(tmp_path):
    """Test that FASTLANE_ variables override defaults"""
    os.environ["FASTLANE_PORT"] = "8123"
    os.environ["FASTLANE_REQUIRE_APPROVAL"] = "true"
    os.environ["FASTLANE_UPLOAD_DIR"] = str(tmp_path)

    from fastlane.config import Settings
    settings = Settings()

    assert settings.port == 8123
    assert settings.require_approval is True
    assert settings.upload_dir == tmp_path


def test_log_level_is_normalized():
    from fastlane.config import Settings

    assert Settings(log_level="DEBUG").log_level == "debug"
    assert Settings(log_level="verbose").log_level == "info"
    assert Settings(log_format="Console").log_format == "console"
    assert Settings(log_format="xml").log_format == "json"


def test_upload_dir_expands_user():
    from fastlane.config import Settings
    settings = Settings(upload_dir="~/shared")

    assert settings.upload_dir == Path.home() / "shared"


@pytest.mark.parametrize("field", ["max_file_size", "max_files", "download_chunk_size"])
def test_non_positive_limits_rejected(field):
    from fastlane.config import Settings

    with pytest.raises(ValidationError) as exc_info:
        Settings(**{field: 0})

    assert field in str(exc_info.value)


def test_port_out_of_range_rejected():
    from fastlane.config import Settings

    with pytest.raises(ValidationError):
        Settings(port=70000)
