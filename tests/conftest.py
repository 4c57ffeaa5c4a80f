"""Pytest configuration and shared fixtures"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from fastlane.config import Settings
from fastlane.main import create_app
from fastlane.server import TransferServer
from fastlane.services.activity_log import ActivityLog

DEVICE_IP = "192.168.1.20"
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@pytest.fixture(autouse=True)
def reset_env_vars() -> Generator[None, None, None]:
    """Reset environment variables before each test"""
    original_env = os.environ.copy()

    for var in list(os.environ):
        if var.startswith("FASTLANE_"):
            os.environ.pop(var, None)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings(upload_dir) -> Settings:
    """Settings isolated to a temporary upload directory"""
    return Settings(upload_dir=upload_dir, environment="test", log_level="warning")


@pytest.fixture
def activity_log() -> ActivityLog:
    return ActivityLog(capacity=100)


@pytest.fixture
def server(settings) -> TransferServer:
    return TransferServer(settings)


@pytest.fixture
def client(server) -> Generator[TestClient, None, None]:
    """TestClient that looks like a phone on the LAN"""
    app = create_app(server=server)
    with TestClient(app, headers={"X-Forwarded-For": DEVICE_IP, "User-Agent": IPHONE_UA}) as test_client:
        yield test_client
