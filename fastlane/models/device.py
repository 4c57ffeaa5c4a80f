"""Device presence model"""

from datetime import datetime
from typing import Any, Dict

from pydantic import Field

from fastlane.models.base import RecordModel, utcnow


class DeviceRecord(RecordModel):
    """A client network address seen making requests"""

    id: str
    address: str = Field(alias="ip")
    user_agent: str = Field(default="Unknown", alias="userAgent")
    display_name: str = Field(default="Unknown Device", alias="deviceName")
    first_seen: datetime = Field(default_factory=utcnow, alias="connectedAt")
    last_seen: datetime = Field(default_factory=utcnow, alias="lastSeen")
    request_count: int = Field(default=1, alias="requests")

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"user_agent"})
