"""FastAPI application entry point"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fastlane import __version__
from fastlane.config import Settings, settings as default_settings
from fastlane.exceptions import FastLaneError
from fastlane.server import TransferServer
from fastlane.utils.logger import get_logger, log_server_config, redact_token
from fastlane.utils.network import client_address

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the scheduler on startup, stop it and clean up on shutdown"""
    server: TransferServer = app.state.server
    log_server_config(logger, server.settings)
    logger.info("server_starting", token=redact_token(server.session_token))

    server.start_background_jobs()

    yield

    server.stop_background_jobs()
    server.cleanup()


async def fastlane_error_handler(request: Request, exc: FastLaneError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=exc.headers(),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(config: Optional[Settings] = None, server: Optional[TransferServer] = None) -> FastAPI:
    """
    Build the application around one TransferServer.

    Routes are registered before the upload directory is mounted at ``/`` so
    the static mount only answers paths no route claims.
    """
    server = server or TransferServer(config or default_settings)

    app = FastAPI(
        title="FastLane",
        description="Local network file sharing",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.server = server

    app.add_exception_handler(FastLaneError, fastlane_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.middleware("http")
    async def track_devices(request: Request, call_next):
        """Every request updates device presence before it is dispatched"""
        server.devices.touch(client_address(request), request.headers.get("user-agent"))
        return await call_next(request)

    # CORS wraps the device middleware so preflight answers carry the headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Content-Length", "Content-Disposition", "Accept-Ranges"],
    )

    from fastlane.routes.access import router as access_router
    from fastlane.routes.devices import router as devices_router
    from fastlane.routes.files import router as files_router
    from fastlane.routes.static import GatedStaticFiles
    from fastlane.routes.system import router as system_router

    app.include_router(system_router)
    app.include_router(access_router)
    app.include_router(devices_router)
    app.include_router(files_router)

    app.mount("/", GatedStaticFiles(directory=str(server.settings.upload_dir)), name="uploads")

    return app
