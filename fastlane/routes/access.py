"""Access request routes"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from fastlane.routes.deps import get_server, require_host
from fastlane.server import TransferServer
from fastlane.utils.network import client_address, peer_address

router = APIRouter(tags=["access"])


class AccessRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_name: Optional[str] = Field(default=None, alias="deviceName")


@router.post("/request-access")
async def request_access(
    request: Request,
    body: Optional[AccessRequestCreate] = None,
    server: TransferServer = Depends(get_server),
):
    """Receiver submits its device name and waits for approval"""
    access_request = server.access.submit(
        client_address(request),
        body.device_name if body else None,
        peer_address=peer_address(request),
    )
    return {
        "success": True,
        "requestId": access_request.id,
        "message": "Access request sent. Waiting for approval...",
    }


@router.get("/check-access/{request_id}")
async def check_access(request_id: str, server: TransferServer = Depends(get_server)):
    return {"status": server.access.status(request_id).value}


@router.get("/pending-requests")
async def pending_requests(server: TransferServer = Depends(get_server)):
    return {"requests": [r.to_public() for r in server.access.list_pending()]}


@router.post("/approve-access/{request_id}", dependencies=[Depends(require_host)])
async def approve_access(request_id: str, server: TransferServer = Depends(get_server)):
    server.access.approve(request_id)
    return {"success": True, "message": "Access approved"}


@router.post("/reject-access/{request_id}", dependencies=[Depends(require_host)])
async def reject_access(request_id: str, server: TransferServer = Depends(get_server)):
    server.access.reject(request_id)
    return {"success": True, "message": "Access rejected"}
