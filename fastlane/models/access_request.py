"""Access request model"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from fastlane.models.base import RecordModel, utcnow


class AccessStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class AccessRequest(RecordModel):
    """A device's bid to be recognized by name"""

    id: str = Field(alias="requestId")
    address: str = Field(alias="ip")
    # Socket peer that submitted the request; approval is granted to it
    peer_address: str = Field(default="", alias="peer")
    display_name: str = Field(alias="deviceName")
    requested_at: datetime = Field(default_factory=utcnow, alias="timestamp")
    status: AccessStatus = AccessStatus.PENDING
    decided_at: Optional[datetime] = Field(default=None, alias="decidedAt")

    def to_public(self) -> Dict[str, Any]:
        """Pending-list view for the approving side"""
        return self.model_dump(
            mode="json", by_alias=True, include={"id", "address", "display_name", "requested_at"}
        )
