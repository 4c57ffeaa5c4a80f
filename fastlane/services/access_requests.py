"""Access request state machine: pending -> approved | rejected"""

import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from fastlane.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from fastlane.models.access_request import AccessRequest, AccessStatus
from fastlane.models.base import utcnow
from fastlane.services.activity_log import ActivityLog
from fastlane.utils.identifiers import generate_id
from fastlane.utils.logger import get_logger

logger = get_logger(__name__)

# Called as schedule(func, delay_seconds, job_id, args)
PurgeScheduler = Callable[..., None]


class AccessRequestService:
    """
    Tracks access requests submitted by devices.

    Pending and rejected requests live in one table; rejected ones are purged
    after a short grace window so a last status poll still sees "rejected".
    Approved requests move to a bounded LRU so status polls keep answering
    "approved" without growing forever.
    """

    def __init__(
        self,
        activity_log: ActivityLog,
        schedule: Optional[PurgeScheduler] = None,
        rejected_grace_seconds: float = 5.0,
        approved_capacity: int = 500,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.activity_log = activity_log
        self.schedule = schedule
        self.rejected_grace = timedelta(seconds=rejected_grace_seconds)
        self.approved_capacity = approved_capacity
        self.clock = clock
        self._requests: Dict[str, AccessRequest] = {}
        self._approved: "OrderedDict[str, AccessRequest]" = OrderedDict()
        self._approved_addresses: Set[str] = set()
        self._lock = threading.Lock()

    def submit(
        self, address: str, display_name: Optional[str], peer_address: Optional[str] = None
    ) -> AccessRequest:
        name = (display_name or "").strip()
        if not name:
            raise ValidationError("Device name is required")

        request = AccessRequest(
            id=generate_id(),
            address=address,
            peer_address=peer_address or address,
            display_name=name,
            requested_at=self.clock(),
        )
        with self._lock:
            self._requests[request.id] = request

        self.activity_log.log(f"Access request from: {name} ({address})")
        return request.model_copy()

    def status(self, request_id: str) -> AccessStatus:
        with self._lock:
            approved = self._approved.get(request_id)
            if approved is not None:
                self._approved.move_to_end(request_id)
                return AccessStatus.APPROVED

            request = self._requests.get(request_id)
            if request is None:
                return AccessStatus.UNKNOWN

            if request.status == AccessStatus.REJECTED and self._grace_elapsed(request):
                self._requests.pop(request_id, None)
                return AccessStatus.UNKNOWN

            return request.status

    def list_pending(self) -> List[AccessRequest]:
        with self._lock:
            pending = [
                r.model_copy() for r in self._requests.values() if r.status == AccessStatus.PENDING
            ]
        return sorted(pending, key=lambda r: r.requested_at)

    def approve(self, request_id: str) -> AccessRequest:
        with self._lock:
            request = self._take_pending(request_id)
            request.status = AccessStatus.APPROVED
            request.decided_at = self.clock()
            self._requests.pop(request_id, None)

            self._approved[request_id] = request
            self._approved.move_to_end(request_id)
            while len(self._approved) > self.approved_capacity:
                evicted_id, _ = self._approved.popitem(last=False)
                logger.debug(f"Evicted approved request {evicted_id} from cache")

            self._approved_addresses.add(request.peer_address)
            snapshot = request.model_copy()

        self.activity_log.log(f"Access approved for: {request.display_name} ({request.address})")
        return snapshot

    def reject(self, request_id: str) -> AccessRequest:
        with self._lock:
            request = self._take_pending(request_id)
            request.status = AccessStatus.REJECTED
            request.decided_at = self.clock()
            snapshot = request.model_copy()

        self.activity_log.log(f"Access rejected for: {request.display_name} ({request.address})")

        if self.schedule is not None:
            self.schedule(
                self.purge,
                self.rejected_grace.total_seconds(),
                f"purge_request_{request_id}",
                (request_id,),
            )
        return snapshot

    def purge(self, request_id: str) -> bool:
        """Drop a rejected request; returns False if it was already gone"""
        with self._lock:
            request = self._requests.get(request_id)
            if request is None or request.status != AccessStatus.REJECTED:
                return False
            del self._requests[request_id]
        logger.debug(f"Purged rejected access request {request_id}")
        return True

    def is_approved(self, address: str) -> bool:
        """Whether ``address`` (a socket peer) submitted a request that was approved"""
        with self._lock:
            return address in self._approved_addresses

    def _take_pending(self, request_id: str) -> AccessRequest:
        """Caller holds the lock"""
        request = self._requests.get(request_id)
        if request is None:
            if request_id in self._approved:
                raise InvalidTransitionError("Request already approved")
            raise NotFoundError("Request not found")
        if request.status != AccessStatus.PENDING:
            raise InvalidTransitionError(f"Request already {request.status.value}")
        return request

    def _grace_elapsed(self, request: AccessRequest) -> bool:
        if request.decided_at is None:
            return False
        return self.clock() - request.decided_at > self.rejected_grace
