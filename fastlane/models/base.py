"""Base model and time helpers shared by in-memory records"""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base for records. Python code uses field names, API JSON uses the aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_public(self) -> Dict[str, Any]:
        """JSON-ready dict with alias keys"""
        return self.model_dump(mode="json", by_alias=True)
