"""Activity log entry"""

from datetime import datetime

from pydantic import ConfigDict, Field

from fastlane.models.base import RecordModel, utcnow


class LogEntry(RecordModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    message: str
