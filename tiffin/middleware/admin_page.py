# tiffin/middleware/admin_page.py

import posixpath
from urllib.parse import parse_qs

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from tiffin.config import settings
from tiffin.utils.security import check_admin_key

class AdminPageMiddleware:
    """Статическая страница администратора открывается только с ?key=ADMIN_KEY."""

    def __init__(self, app: ASGIApp, path: str = "/admin.html"):
        self.app = app
        self.page = posixpath.basename(path)

    def is_admin_page(self, path: str) -> bool:
        # StaticFiles отдаёт /admin.html/ и //admin.html как тот же файл
        normalized = posixpath.normpath(path or "/").rstrip("/")
        return posixpath.basename(normalized) == self.page

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http" or not self.is_admin_page(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        query = parse_qs(scope.get("query_string", b"").decode("latin-1"))
        key = (query.get("key") or [None])[0]
        if check_admin_key(key, settings.ADMIN_KEY):
            await self.app(scope, receive, send)
            return

        response = PlainTextResponse("Access Denied", status_code=403)
        await response(scope, receive, send)
