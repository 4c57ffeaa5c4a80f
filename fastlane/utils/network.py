"""Network address helpers"""

import socket
from typing import Optional

from starlette.requests import Request

from fastlane.services.device_tracker import normalize_address


def client_address(request: Request) -> str:
    """
    Address the calling device is known by

    The leftmost X-Forwarded-For entry wins over the socket peer. This is the
    only place the header is read; it names devices but never grants access.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return normalize_address(first)
    return peer_address(request)


def peer_address(request: Request) -> str:
    """Socket peer of the connection; uvicorn runs without proxy header rewriting"""
    if request.client and request.client.host:
        return normalize_address(request.client.host)
    return ""


def get_local_ip_address(probe_host: str = "10.255.255.255") -> str:
    """
    First non-internal IPv4 address of this machine, 127.0.0.1 if none

    Connecting a UDP socket sends no packets; it only selects the outbound
    interface.
    """
    sock: Optional[socket.socket] = None
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.connect((probe_host, 1))
        address = sock.getsockname()[0]
        if address and not address.startswith("127."):
            return address
    except OSError:
        pass
    finally:
        if sock is not None:
            sock.close()

    try:
        for info in socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET):
            address = info[4][0]
            if not address.startswith("127."):
                return address
    except OSError:
        pass

    return "127.0.0.1"
