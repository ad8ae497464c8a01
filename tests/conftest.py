"""Pytest fixtures for tiffin tests."""

import itertools
import os
import tempfile
from pathlib import Path

# settings читаются при импорте tiffin.config, поэтому окружение задаём заранее
_TMP = Path(tempfile.mkdtemp(prefix="tiffin-tests-"))
os.environ.update({
    "GATEWAY_KEY_ID": "rzp_test_key",
    "GATEWAY_KEY_SECRET": "test_secret",
    "ADMIN_KEY": "test_admin_key",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TMP / 'app.db'}",
    "LOG_DIR": str(_TMP / "log"),
    "LOG_PRINT": "0",
    "STATIC_DIR": str(_TMP / "no-static"),
    "MESSAGING_ACCOUNT_SID": "",
    "MESSAGING_AUTH_TOKEN": "",
    "MESSAGING_FROM": "",
})

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession

from tiffin.errors import GatewayError
from tiffin.utils.log import Log
from tiffin.utils.security import payment_signature


class FakeGateway:
    """Платёжный шлюз в памяти."""

    def __init__(self, key_id: str = "rzp_test_key"):
        self.key_id = key_id
        self.calls = []
        self.fail = False
        self._ids = itertools.count(1)

    async def create_transaction(self, amount_minor: int, currency: str, receipt: str) -> str:
        self.calls.append({"amount": amount_minor, "currency": currency, "receipt": receipt})
        if self.fail:
            raise GatewayError("gateway HTTP 500: upstream exploded")
        return f"order_fake{next(self._ids)}"

    async def close(self):
        pass


class RecordingNotifier:
    def __init__(self):
        self.calls = []
        self.fail = False

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        if self.fail:
            raise RuntimeError("messaging provider down")
        self.calls.append((channel, recipient, message))


def sign(gateway_order_id: str, gateway_payment_id: str, secret: str = "test_secret") -> str:
    return payment_signature(secret, gateway_order_id, gateway_payment_id)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def log(tmp_path):
    return Log(log_dir=str(tmp_path / "log"), log_print="0")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def session_factory(tmp_path):
    """Отдельная SQLite база на тест, с таблицами и меню."""
    from tiffin.utils.database import init_db

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await init_db(bind=engine, session_factory=factory)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
