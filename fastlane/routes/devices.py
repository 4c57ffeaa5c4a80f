"""Connected device routes"""

from fastapi import APIRouter, Depends

from fastlane.routes.deps import get_server
from fastlane.server import TransferServer

router = APIRouter(tags=["devices"])


@router.get("/devices")
async def list_devices(server: TransferServer = Depends(get_server)):
    return {"devices": [d.to_public() for d in server.devices.list()]}
