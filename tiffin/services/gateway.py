# tiffin/services/gateway.py

from typing import Optional, Protocol

import httpx

from tiffin.config import settings
from tiffin.errors import GatewayError


class PaymentGateway(Protocol):
    key_id: str

    async def create_transaction(self, amount_minor: int, currency: str, receipt: str) -> str:
        """Создаёт транзакцию в шлюзе и возвращает её id."""
        ...


class RazorpayGateway:
    """
    Клиент Orders API платёжного шлюза (Razorpay).

    Используется только создание заказа: POST /orders с basic-auth (key_id, key_secret).
    """

    def __init__(
        self,
        key_id: str = None,
        key_secret: str = None,
        api_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id or settings.GATEWAY_KEY_ID
        self.key_secret = key_secret or settings.GATEWAY_KEY_SECRET
        self.api_url = (api_url or settings.GATEWAY_API_URL).rstrip("/")
        self.timeout = timeout or settings.GATEWAY_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def create_transaction(self, amount_minor: int, currency: str, receipt: str) -> str:
        client = await self._get_client()
        payload = {"amount": amount_minor, "currency": currency, "receipt": receipt}

        try:
            response = await client.post("/orders", json=payload)
        except httpx.TimeoutException as e:
            raise GatewayError(f"gateway timeout: {e}") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"gateway unreachable: {e}") from e

        if response.status_code >= 400:
            raise GatewayError(f"gateway HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise GatewayError("gateway returned non-JSON body") from e

        transaction_id = body.get("id") if isinstance(body, dict) else None
        if not transaction_id:
            raise GatewayError("gateway response has no order id")
        return transaction_id

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
