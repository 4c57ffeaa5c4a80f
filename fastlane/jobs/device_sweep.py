"""Device presence sweep job"""

from fastlane.services.device_tracker import DeviceTracker
from fastlane.utils.logger import get_logger

logger = get_logger(__name__)


async def sweep_devices_job(tracker: DeviceTracker):
    """Drop devices that have been silent longer than the staleness window"""
    try:
        removed = tracker.sweep()
        if removed:
            logger.debug(f"Device sweep removed {len(removed)} device(s)")
    except Exception as e:
        logger.error(f"Error in device sweep: {e}", exc_info=True)
