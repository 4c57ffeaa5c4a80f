"""Start and stop the HTTP server for the desktop shell"""

import threading
import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import uvicorn

from fastlane.config import Settings, settings as default_settings
from fastlane.main import create_app
from fastlane.server import TransferServer
from fastlane.utils.logger import get_logger
from fastlane.utils.network import get_local_ip_address

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServerInfo:
    """What the shell forwards to the presentation layer"""

    host: str
    port: int
    token: str
    url: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class ServerHandle:
    """A uvicorn server running in a background thread"""

    def __init__(self, server: uvicorn.Server, thread: threading.Thread, transfer_server: TransferServer):
        self.server = server
        self.thread = thread
        self.transfer_server = transfer_server
        self.info: Optional[ServerInfo] = None

    def bound_port(self) -> int:
        for listener in self.server.servers:
            for sock in listener.sockets:
                return sock.getsockname()[1]
        raise RuntimeError("Server has no listening socket")

    def wait(self):
        """Block until the server thread exits"""
        while self.thread.is_alive():
            self.thread.join(timeout=0.5)

    def stop(self, timeout: float = 10.0):
        """Ask uvicorn to exit; the app lifespan runs shutdown cleanup"""
        self.server.should_exit = True
        self.thread.join(timeout=timeout)
        if self.thread.is_alive():
            logger.warning("Server thread did not stop in time; forcing exit")
            self.server.force_exit = True
            self.thread.join(timeout=timeout)


def build_uvicorn_config(app, config: Settings) -> uvicorn.Config:
    """
    Transfers may run for a long time, so uvicorn's only idle bound here is
    the keep-alive timeout between requests.
    """
    return uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        timeout_keep_alive=config.keep_alive_timeout,
        server_header=False,
        date_header=True,
        # request.client must stay the socket peer; the host check relies on it
        proxy_headers=False,
        log_config=None,
        access_log=False,
    )


def start_server(config: Optional[Settings] = None, startup_timeout: float = 15.0) -> ServerHandle:
    """
    Start the server (port 0 picks an ephemeral port) and wait until it listens

    Returns:
        ServerHandle whose ``info`` holds ``{host, port, token, url}``
    """
    config = config or default_settings
    transfer_server = TransferServer(config)
    app = create_app(server=transfer_server)

    server = uvicorn.Server(build_uvicorn_config(app, config))
    thread = threading.Thread(target=server.run, name="fastlane-server", daemon=True)
    handle = ServerHandle(server, thread, transfer_server)
    thread.start()

    deadline = time.monotonic() + startup_timeout
    while not server.started:
        if not thread.is_alive():
            raise RuntimeError("Server failed to start")
        if time.monotonic() > deadline:
            handle.stop()
            raise RuntimeError(f"Server did not start within {startup_timeout} seconds")
        time.sleep(0.05)

    port = handle.bound_port()
    host = get_local_ip_address()
    handle.info = ServerInfo(
        host=host,
        port=port,
        token=transfer_server.session_token,
        url=f"http://{host}:{port}",
    )
    transfer_server.activity_log.log(f"Server started on port {port}")
    transfer_server.activity_log.log(
        f"Optimized for high-speed transfers - Max file size: {config.max_file_size // (1024 ** 3)}GB"
    )
    logger.info("server_started", host=host, port=port)
    return handle
