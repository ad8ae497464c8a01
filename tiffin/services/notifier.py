# tiffin/services/notifier.py

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from tiffin.config import settings


@dataclass(frozen=True)
class Notification:
    channel: str      # "whatsapp" | "sms"
    recipient: str    # номер клиента
    message: str


class Notifier(Protocol):
    async def notify(self, channel: str, recipient: str, message: str) -> None:
        ...


def normalize_mobile(mobile: str, country_code: str = None) -> str:
    """10-значный номер без кода страны дополняем кодом (по умолчанию +91)."""
    country_code = country_code or settings.MESSAGING_COUNTRY_CODE
    mobile = mobile.strip().replace(" ", "")
    if mobile.startswith("+"):
        return mobile
    if len(mobile) == 10 and mobile.isdigit():
        return f"{country_code}{mobile}"
    return mobile


class TwilioNotifier:
    """Отправка сообщений через Messages API (Twilio), WhatsApp или SMS."""

    def __init__(
        self,
        account_sid: str = None,
        auth_token: str = None,
        sender: str = None,
        api_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid or settings.MESSAGING_ACCOUNT_SID
        self.auth_token = auth_token or settings.MESSAGING_AUTH_TOKEN
        self.sender = sender or settings.MESSAGING_FROM
        self.api_url = (api_url or settings.MESSAGING_API_URL).rstrip("/")
        self.timeout = timeout or settings.MESSAGING_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def address(channel: str, number: str) -> str:
        if channel == "whatsapp" and not number.startswith("whatsapp:"):
            return f"whatsapp:{number}"
        return number

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        client = await self._get_client()
        data = {
            "From": self.address(channel, self.sender),
            "To": self.address(channel, normalize_mobile(recipient)),
            "Body": message,
        }
        response = await client.post(f"/Accounts/{self.account_sid}/Messages.json", data=data)
        response.raise_for_status()

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class LogNotifier:
    """Заглушка без учётных данных провайдера: сообщение только пишется в лог."""

    def __init__(self, log):
        self.log = log

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        await self.log.log_info("notify", "Сообщение не отправлено (провайдер не настроен)", {
            "channel": channel, "recipient": recipient, "message": message
        })


class NotificationQueue:
    """
    Очередь уведомлений с одним фоновым обработчиком.

    emit() не блокирует вызывающего; ошибки и таймауты провайдера
    логируются и дальше обработчика не уходят.
    """

    def __init__(self, notifier: Notifier, log, timeout: float = None):
        self.notifier = notifier
        self.log = log
        self.timeout = timeout or settings.MESSAGING_TIMEOUT
        self.queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.sent = 0
        self.failed = 0

    def start(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-worker")

    def emit(self, notification: Notification):
        self.queue.put_nowait(notification)

    async def join(self):
        await self.queue.join()

    async def _run(self):
        while True:
            notification = await self.queue.get()
            try:
                await self.deliver(notification)
            finally:
                self.queue.task_done()

    async def deliver(self, notification: Notification):
        try:
            await asyncio.wait_for(
                self.notifier.notify(notification.channel, notification.recipient, notification.message),
                timeout=self.timeout,
            )
            self.sent += 1
            await self.log.log_info("notify", "Уведомление отправлено", {
                "channel": notification.channel, "recipient": notification.recipient
            })
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failed += 1
            await self.log.log_error("notify", f"Ошибка отправки уведомления: {e!r}", {
                "channel": notification.channel, "recipient": notification.recipient
            })

    async def stop(self, drain: bool = True):
        if drain and self._worker is not None and not self._worker.done():
            try:
                await asyncio.wait_for(self.queue.join(), timeout=self.timeout)
            except asyncio.TimeoutError:
                await self.log.log_warning("notify", "Очередь уведомлений не успела опустеть", {
                    "pending": self.queue.qsize()
                })
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
