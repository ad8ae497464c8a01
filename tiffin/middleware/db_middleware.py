# tiffin/middleware/db_middleware.py

from starlette.types import ASGIApp, Receive, Scope, Send
from tiffin.utils.database import AsyncSessionLocal

class DBSessionMiddleware:
    """Кладёт AsyncSession в request.state.db и закрывает её после ответа."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # фабрику можно подменить через app.state.session_factory (тесты, другая БД)
        factory = AsyncSessionLocal
        app = scope.get("app")
        if app is not None:
            factory = getattr(app.state, "session_factory", None) or AsyncSessionLocal

        state = scope.setdefault("state", {})
        state["db"] = factory()
        try:
            await self.app(scope, receive, send)
        finally:
            await state["db"].close()
