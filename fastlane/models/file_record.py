"""File metadata model (bytes live in the upload directory)"""

from datetime import datetime
from typing import Any, Dict

from pydantic import ConfigDict, Field

from fastlane.models.base import RecordModel, utcnow


class FileRecord(RecordModel):
    """Metadata for a file stored in the upload directory"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    display_name: str = Field(alias="name")
    storage_name: str = Field(alias="filename")
    size_bytes: int = Field(ge=0, alias="size")
    content_type: str = Field(default="application/octet-stream", alias="mimetype")
    uploaded_at: datetime = Field(default_factory=utcnow, alias="uploadedAt")
    absolute_path: str = Field(alias="path")

    def to_public(self) -> Dict[str, Any]:
        """Listing view; never exposes where the file lives on disk"""
        return self.model_dump(
            mode="json", by_alias=True, exclude={"storage_name", "absolute_path"}
        )


class PersistedUpload(RecordModel):
    """An uploaded part already written to the upload directory"""

    display_name: str
    storage_name: str
    path: str
    size_bytes: int = 0
    content_type: str = "application/octet-stream"
