"""Health, info, activity log, QR code and landing page routes"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from qrcode.exceptions import DataOverflowError

from fastlane.exceptions import ValidationError
from fastlane.routes.deps import get_server
from fastlane.server import TransferServer
from fastlane.utils.qr import make_qr_data_url

router = APIRouter(tags=["system"])

LANDING_PAGE = """<!DOCTYPE html>
<html>
<head><title>File Sharing</title></head>
<body style="font-family: Arial; text-align: center; padding: 50px;">
  <h1>Offline File Sharing</h1>
  <p>Server is running! Use the desktop app to manage files.</p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def landing_page():
    return LANDING_PAGE


@router.get("/health")
async def health_check(server: TransferServer = Depends(get_server)):
    return {"status": "ok", "token": server.session_token}


@router.get("/info")
async def server_info(server: TransferServer = Depends(get_server)):
    return {"token": server.session_token, "filesCount": server.files.count()}


@router.get("/logs")
async def get_logs(server: TransferServer = Depends(get_server)):
    return {"logs": [entry.to_public() for entry in server.activity_log.entries()]}


@router.post("/clear-logs")
async def clear_logs(server: TransferServer = Depends(get_server)):
    server.activity_log.clear()
    server.activity_log.log("Activity logs cleared")
    return {"success": True, "message": "Logs cleared successfully"}


@router.get("/qrcode")
async def qr_code(url: Optional[str] = None, server: TransferServer = Depends(get_server)):
    """Scannable code for the share URL"""
    if not url:
        raise ValidationError("URL parameter required")

    try:
        data_url = await run_in_threadpool(
            make_qr_data_url,
            url,
            box_size=server.settings.qr_box_size,
            border=server.settings.qr_border,
        )
    except DataOverflowError as e:
        raise ValidationError("URL too long for a QR code") from e
    return {"qrCode": data_url}
