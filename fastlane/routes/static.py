"""Upload directory served at ``/`` behind the file access gate"""

from fastapi.staticfiles import StaticFiles
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from fastlane.routes.deps import check_file_access


class GatedStaticFiles(StaticFiles):
    """StaticFiles that applies the same approval gate as the file routes"""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            request = Request(scope)
            # Raised errors reach the app's FastLaneError handler
            check_file_access(request, request.app.state.server)
        await super().__call__(scope, receive, send)
