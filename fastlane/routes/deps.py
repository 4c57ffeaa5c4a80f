"""Shared route dependencies"""

from fastapi import Depends, Request

from fastlane.exceptions import AccessDeniedError
from fastlane.server import TransferServer
from fastlane.services.device_tracker import is_loopback
from fastlane.utils.network import peer_address


def get_server(request: Request) -> TransferServer:
    return request.app.state.server


def is_host(request: Request) -> bool:
    """The desktop host talks to the server over loopback"""
    return is_loopback(peer_address(request))


def check_file_access(request: Request, server: TransferServer):
    """
    Approval gate shared by the file routes and the static upload mount.

    A no-op unless require_approval is enabled. Decisions use the socket
    peer, never X-Forwarded-For.
    """
    if not server.settings.require_approval:
        return
    if is_host(request) or server.access.is_approved(peer_address(request)):
        return
    raise AccessDeniedError("Device not approved")


def require_file_access(request: Request, server: TransferServer = Depends(get_server)):
    check_file_access(request, server)


def require_host(request: Request, server: TransferServer = Depends(get_server)):
    """Approving devices and deleting files is left to the host when the gate is on"""
    if server.settings.require_approval and not is_host(request):
        raise AccessDeniedError("Only the host can do this")
