# tiffin/main.py

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn
from dotenv import load_dotenv
from contextlib import asynccontextmanager

# --- загрузка переменных окружения (до чтения settings) ---
load_dotenv()

from tiffin.config import settings
from tiffin.errors import (
    TiffinError,
    ValidationError,
    GatewayError,
    NotFoundError,
    ConflictError,
    AdminKeyError,
)
from tiffin.utils.log import Log
from tiffin.utils.database import engine, init_db
from tiffin.services.gateway import RazorpayGateway
from tiffin.services.notifier import LogNotifier, NotificationQueue, TwilioNotifier
from tiffin.middleware.db_middleware import DBSessionMiddleware
from tiffin.middleware.admin_page import AdminPageMiddleware

import os
import multiprocessing

# --- sync логгер для раннего старта ---
boot_log = Log()
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="Импорты main.py выполнены")


def build_notifier(log):
    if settings.MESSAGING_ACCOUNT_SID and settings.MESSAGING_AUTH_TOKEN and settings.MESSAGING_FROM:
        return TwilioNotifier()
    boot_log.log_warning_sync("startup", "Провайдер сообщений не настроен, уведомления только в лог")
    return LogNotifier(log)


# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: startup начат")

    app.state.log = Log()
    await app.state.log.log_info(target="startup", message="Async Log инициализирован")

    # Инициализация БД и меню
    added = await init_db()
    boot_log.log_info_sync(target="startup", message="База инициализирована", data={"menu_added": added})

    app.state.gateway = RazorpayGateway()
    notifier = build_notifier(app.state.log)
    app.state.notifications = NotificationQueue(notifier, app.state.log)
    app.state.notifications.start()

    yield

    # shutdown
    await app.state.log.log_info(target="shutdown", message="Остановка приложения")
    await app.state.notifications.stop()
    await app.state.gateway.close()
    if hasattr(notifier, "close"):
        await notifier.close()
    await engine.dispose()
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log корректно завершён")

# ────────────── Создаём FastAPI приложение ──────────────
app = FastAPI(title="Tiffin Orders API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# DB middleware для request.state.db
app.add_middleware(DBSessionMiddleware)
# /admin.html только с ключом
app.add_middleware(AdminPageMiddleware)

# ────────────── Ошибки → HTTP ──────────────
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    AdminKeyError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    GatewayError: 502,
}


@app.exception_handler(TiffinError)
async def tiffin_error_handler(request: Request, exc: TiffinError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        await request.app.state.log.log_error("http", f"{type(exc).__name__}: {exc}", {"path": request.url.path})
    return JSONResponse(status_code=status_code, content={"error": exc.client_message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # детали только в лог
    await request.app.state.log.log_error("http", f"Необработанная ошибка: {exc!r}", {"path": request.url.path})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
def health():
    return {"status": "ok"}

# ────────────── Подключение роутов ──────────────
from tiffin.routes import menu, order

app.include_router(menu.router, tags=["menu"])
app.include_router(order.router, tags=["order"])

# ────────────── Статика (index.html, admin.html) ──────────────
if os.path.isdir(settings.STATIC_DIR):
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")

# ────────────── Запуск uvicorn ──────────────
def run():
    boot_log.log_info_sync(target="startup", message="Запуск uvicorn.run", data={"port": settings.PORT})
    uvicorn.run(
        "tiffin.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level="info",
    )

if __name__ == "__main__":
    run()
