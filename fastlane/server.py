"""Transfer server: owns every piece of in-memory state for one run"""

from typing import Optional

from fastlane.config import Settings, settings as default_settings
from fastlane.scheduler import SchedulerService
from fastlane.services.access_requests import AccessRequestService
from fastlane.services.activity_log import ActivityLog
from fastlane.services.device_tracker import DeviceTracker
from fastlane.services.file_registry import FileRegistry
from fastlane.services.transfer_service import TransferService, UploadLimits
from fastlane.utils.identifiers import generate_token
from fastlane.utils.logger import get_logger

logger = get_logger(__name__)


class TransferServer:
    """
    Container for the session token, the registries and the scheduler.

    Routes reach the state only through the services held here; nothing else
    mutates them.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.session_token = generate_token()

        self.activity_log = ActivityLog(capacity=self.settings.activity_log_capacity)
        self.scheduler = SchedulerService()
        self.scheduler.initialize()

        self.files = FileRegistry(self.settings.upload_dir, self.activity_log)
        self.devices = DeviceTracker(
            self.activity_log,
            stale_after_seconds=self.settings.device_stale_after_seconds,
        )
        self.access = AccessRequestService(
            self.activity_log,
            schedule=self.scheduler.add_delayed_job,
            rejected_grace_seconds=self.settings.rejected_request_grace_seconds,
            approved_capacity=self.settings.approved_request_capacity,
        )
        self.transfers = TransferService(
            self.settings.upload_dir,
            self.activity_log,
            UploadLimits.from_settings(self.settings),
            chunk_size=self.settings.download_chunk_size,
        )

        self.files.ensure_upload_dir()
        self.files.bootstrap()

    def start_background_jobs(self):
        """Schedule the device sweep and start the scheduler (needs a running loop)"""
        from fastlane.jobs.device_sweep import sweep_devices_job

        self.scheduler.add_interval_job(
            sweep_devices_job,
            seconds=self.settings.device_sweep_interval_seconds,
            job_id="device_sweep",
            args=[self.devices],
        )
        self.scheduler.start()

    def stop_background_jobs(self):
        self.scheduler.stop()

    def cleanup(self):
        """Shutdown cleanup; failures are logged and never raised"""
        self.activity_log.log("Cleaning up...")
        if not self.settings.clear_on_shutdown:
            return
        try:
            removed = self.files.clear_all()
            logger.info(f"Removed {removed} uploaded file(s) on shutdown")
        except Exception as e:
            logger.error(f"Error during shutdown cleanup: {e}")
