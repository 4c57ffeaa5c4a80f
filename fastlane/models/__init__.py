"""Models module"""

from fastlane.models.access_request import AccessRequest, AccessStatus
from fastlane.models.device import DeviceRecord
from fastlane.models.file_record import FileRecord, PersistedUpload
from fastlane.models.log_entry import LogEntry

__all__ = ["AccessRequest", "AccessStatus", "DeviceRecord", "FileRecord", "LogEntry", "PersistedUpload"]
