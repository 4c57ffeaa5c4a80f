"""File registry: in-memory catalogue of files in the upload directory"""

import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from fastlane.exceptions import NotFoundError, TransferIOError
from fastlane.models.file_record import FileRecord, PersistedUpload
from fastlane.services.activity_log import ActivityLog
from fastlane.utils.file_utils import format_bytes, parse_storage_name
from fastlane.utils.identifiers import generate_id
from fastlane.utils.logger import get_logger
from fastlane.utils.mime_types import guess_content_type

logger = get_logger(__name__)


class FileRegistry:
    """Keeps FileRecords and the files in the upload directory in lockstep"""

    def __init__(self, upload_dir: Path, activity_log: ActivityLog):
        self.upload_dir = Path(upload_dir)
        self.activity_log = activity_log
        self._files: Dict[str, FileRecord] = {}
        self._lock = threading.Lock()

    def ensure_upload_dir(self):
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def bootstrap(self) -> int:
        """
        Load files left in the upload directory by a previous run

        Returns:
            Number of records created
        """
        loaded = 0
        try:
            entries = sorted(self.upload_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.error(f"Error loading existing files from {self.upload_dir}: {e}")
            return 0

        for path in entries:
            display_name = parse_storage_name(path.name)
            if display_name is None:
                logger.debug(f"Skipping unmanaged file in uploads directory: {path.name}")
                continue

            try:
                stats = path.stat()
            except OSError as e:
                logger.warning(f"Failed to stat {path}: {e}")
                continue
            if not path.is_file():
                continue

            record = FileRecord(
                id=generate_id(),
                display_name=display_name,
                storage_name=path.name,
                size_bytes=stats.st_size,
                content_type=guess_content_type(display_name),
                uploaded_at=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
                absolute_path=str(path.resolve()),
            )
            with self._lock:
                self._files[record.id] = record
            loaded += 1

        if loaded > 0:
            self.activity_log.log(f"Loaded {loaded} existing file(s) from uploads directory")
        return loaded

    def ingest(
        self, uploads: Iterable[PersistedUpload]
    ) -> Tuple[List[FileRecord], List[Dict[str, str]]]:
        """
        Register uploads that the transfer engine already wrote to disk

        Args:
            uploads: Persisted parts of one upload request

        Returns:
            Tuple of (records, errors); a failed file does not stop the rest
            of the batch
        """
        records: List[FileRecord] = []
        errors: List[Dict[str, str]] = []

        for upload in uploads:
            try:
                size = os.path.getsize(upload.path)
                record = FileRecord(
                    id=generate_id(),
                    display_name=upload.display_name,
                    storage_name=upload.storage_name,
                    size_bytes=size,
                    content_type=upload.content_type,
                    absolute_path=str(Path(upload.path).resolve()),
                )
            except OSError as e:
                self.activity_log.log(f"Upload error: {upload.display_name}: {e}")
                errors.append({"name": upload.display_name, "error": str(e)})
                continue

            with self._lock:
                self._files[record.id] = record
            self.activity_log.log(
                f"File uploaded: {record.display_name} ({format_bytes(record.size_bytes)})"
            )
            records.append(record)

        return records, errors

    def list(self) -> List[FileRecord]:
        """All records in insertion order"""
        with self._lock:
            return list(self._files.values())

    def count(self) -> int:
        with self._lock:
            return len(self._files)

    def get(self, file_id: str) -> FileRecord:
        """Return a servable record; records whose file is gone are evicted"""
        with self._lock:
            record = self._files.get(file_id)
        if record is None:
            raise NotFoundError("File not found")

        if not os.path.isfile(record.absolute_path):
            with self._lock:
                self._files.pop(file_id, None)
            logger.warning(f"Evicted record with missing file: {record.display_name}")
            raise NotFoundError("File not found on disk")

        return record

    def delete(self, file_id: str) -> FileRecord:
        with self._lock:
            record = self._files.get(file_id)
        if record is None:
            raise NotFoundError("File not found")

        try:
            self._unlink(record.absolute_path)
        except OSError as e:
            self.activity_log.log(f"Delete error: {e}")
            raise TransferIOError(f"Failed to delete {record.display_name}: {e}") from e

        with self._lock:
            self._files.pop(file_id, None)
        self.activity_log.log(f"File deleted: {record.display_name}")
        return record

    def clear_all(self) -> int:
        """Remove every managed file; individual failures are logged, not raised"""
        with self._lock:
            records = list(self._files.values())
            self._files.clear()

        removed = 0
        for record in records:
            try:
                self._unlink(record.absolute_path)
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to delete {record.absolute_path}: {e}")

        self.activity_log.log("All files cleared")
        return removed

    @staticmethod
    def _unlink(path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
