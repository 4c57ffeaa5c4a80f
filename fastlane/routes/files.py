"""File transfer routes"""

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from fastlane.routes.deps import get_server, require_file_access, require_host
from fastlane.server import TransferServer
from fastlane.services.transfer_service import plan_download

router = APIRouter(tags=["files"], dependencies=[Depends(require_file_access)])


@router.post("/upload")
async def upload_files(request: Request, server: TransferServer = Depends(get_server)):
    """Stream a multipart batch (field ``files``) into the upload directory"""
    persisted = await server.transfers.receive_upload(
        request.headers.get("content-type"), request.stream()
    )
    records, errors = await run_in_threadpool(server.files.ingest, persisted)

    response = {
        "success": bool(records) or not errors,
        "files": [r.to_public() for r in records],
        "message": f"{len(records)} file(s) uploaded successfully",
    }
    if errors:
        response["errors"] = errors
    return response


@router.get("/files")
async def list_files(server: TransferServer = Depends(get_server)):
    return {"files": [r.to_public() for r in server.files.list()]}


@router.get("/download/{file_id}")
async def download_file(
    file_id: str, request: Request, server: TransferServer = Depends(get_server)
):
    """Stream a file; honours single byte ranges"""
    record = await run_in_threadpool(server.files.get, file_id)
    plan = plan_download(record, request.headers.get("range"))
    handle = await server.transfers.open_span(record, plan)

    return StreamingResponse(
        server.transfers.stream_span(handle, record, plan),
        status_code=plan.status_code,
        headers=plan.headers,
    )


@router.delete("/files/{file_id}", dependencies=[Depends(require_host)])
async def delete_file(file_id: str, server: TransferServer = Depends(get_server)):
    await run_in_threadpool(server.files.delete, file_id)
    return {"success": True, "message": "File deleted successfully"}


@router.post("/clear-all", dependencies=[Depends(require_host)])
async def clear_all(server: TransferServer = Depends(get_server)):
    await run_in_threadpool(server.files.clear_all)
    return {"success": True, "message": "All files cleared"}
