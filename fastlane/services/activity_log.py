"""Activity log: bounded ring buffer of timestamped events"""

import threading
from collections import deque
from typing import Deque, List

from fastlane.models.log_entry import LogEntry
from fastlane.utils.logger import get_logger

logger = get_logger(__name__)


class ActivityLog:
    """Fixed-capacity FIFO; appending past capacity drops the oldest entry"""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def log(self, message: str) -> LogEntry:
        """Record an event and mirror it to the structured logger"""
        entry = LogEntry(message=message)
        with self._lock:
            self._entries.append(entry)
        logger.info("activity", message=message)
        return entry

    def entries(self) -> List[LogEntry]:
        """Snapshot, oldest first"""
        with self._lock:
            return list(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
