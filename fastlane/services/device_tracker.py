"""Device presence tracker"""

import ipaddress
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from fastlane.models.base import utcnow
from fastlane.models.device import DeviceRecord
from fastlane.services.activity_log import ActivityLog


UNKNOWN_DEVICE = "Unknown Device"

# Ordered (substrings, name) table; every substring must be present, first match wins
USER_AGENT_FAMILIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("iPhone",), "iPhone"),
    (("iPad",), "iPad"),
    (("Android", "Mobile"), "Android Phone"),
    (("Android",), "Android Tablet"),
    (("Mac OS X",), "Mac"),
    (("Windows",), "Windows PC"),
    (("Linux",), "Linux PC"),
    (("Chrome",), "Chrome Browser"),
    (("Firefox",), "Firefox Browser"),
    (("Safari",), "Safari Browser"),
)


def classify_user_agent(user_agent: Optional[str]) -> str:
    """Derive a display name for a device from its raw User-Agent"""
    if not user_agent:
        return UNKNOWN_DEVICE
    for needles, name in USER_AGENT_FAMILIES:
        if all(needle in user_agent for needle in needles):
            return name
    return UNKNOWN_DEVICE


def normalize_address(address: Optional[str]) -> str:
    """Strip the IPv6-mapped IPv4 prefix"""
    if not address:
        return ""
    address = address.strip()
    if address.lower().startswith("::ffff:"):
        return address[len("::ffff:"):]
    return address


def is_loopback(address: str) -> bool:
    if address == "localhost":
        return True
    try:
        return ipaddress.ip_address(address).is_loopback
    except ValueError:
        return False


class DeviceTracker:
    """Maps client addresses to DeviceRecords; stale records are swept periodically"""

    def __init__(self, activity_log: ActivityLog, stale_after_seconds: int = 300):
        self.activity_log = activity_log
        self.stale_after = timedelta(seconds=stale_after_seconds)
        self._devices: Dict[str, DeviceRecord] = {}
        self._lock = threading.Lock()

    def touch(
        self, address: str, user_agent: Optional[str], now: Optional[datetime] = None
    ) -> Optional[DeviceRecord]:
        """
        Record a request from ``address``

        Returns:
            A copy of the device record, or None for empty/loopback addresses
        """
        address = normalize_address(address)
        if not address or is_loopback(address):
            return None

        now = now or utcnow()
        with self._lock:
            device = self._devices.get(address)
            if device is None:
                device = DeviceRecord(
                    id=address,
                    address=address,
                    user_agent=user_agent or "Unknown",
                    display_name=classify_user_agent(user_agent),
                    first_seen=now,
                    last_seen=now,
                    request_count=1,
                )
                self._devices[address] = device
                created = True
            else:
                device.last_seen = now
                device.request_count += 1
                created = False
            snapshot = device.model_copy()

        if created:
            self.activity_log.log(f"New device connected: {device.display_name} ({address})")
        return snapshot

    def sweep(self, now: Optional[datetime] = None) -> List[DeviceRecord]:
        """Remove devices silent for longer than the staleness window"""
        cutoff = (now or utcnow()) - self.stale_after
        with self._lock:
            stale = [d for d in self._devices.values() if d.last_seen < cutoff]
            for device in stale:
                self._devices.pop(device.id, None)

        for device in stale:
            self.activity_log.log(f"Device disconnected: {device.display_name} ({device.address})")
        return stale

    def list(self) -> List[DeviceRecord]:
        with self._lock:
            return [device.model_copy() for device in self._devices.values()]

    def get(self, address: str) -> Optional[DeviceRecord]:
        with self._lock:
            device = self._devices.get(normalize_address(address))
            return device.model_copy() if device else None
