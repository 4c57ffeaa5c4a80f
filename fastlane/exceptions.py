"""Error taxonomy shared by services and routes"""

from typing import Dict, Optional


class FastLaneError(Exception):
    """Base class for errors rendered as ``{"error": message}`` responses"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(FastLaneError):
    """Bad or missing input"""

    status_code = 400


class AccessDeniedError(FastLaneError):
    """Device is not approved for file operations"""

    status_code = 403


class NotFoundError(FastLaneError):
    """Unknown file or request, or a record whose backing file is gone"""

    status_code = 404


class InvalidTransitionError(FastLaneError):
    """Access request is no longer pending"""

    status_code = 409


class PayloadTooLargeError(FastLaneError):
    """An upload limit was exceeded"""

    status_code = 413


class RangeNotSatisfiableError(FastLaneError):
    """Requested byte range does not fit the file"""

    status_code = 416

    def __init__(self, total_size: int, message: str = "Range not satisfiable"):
        super().__init__(message)
        self.total_size = total_size

    def headers(self) -> Optional[Dict[str, str]]:
        return {"Content-Range": f"bytes */{self.total_size}"}


class TransferIOError(FastLaneError):
    """Disk or stream failure during an upload or download"""

    status_code = 500
