# tiffin/services/pricing.py

import secrets
import threading
import time

from tiffin.config import settings


def delivery_fee(subtotal: int, has_meal: bool,
                 fee: int | None = None, threshold: int | None = None) -> int:
    """
    Плата за доставку.

    Если в корзине есть «meals», доставка бесплатна всегда.
    Иначе fee при subtotal < threshold (включая 0), в остальных случаях 0.
    """
    fee = settings.DELIVERY_FEE if fee is None else fee
    threshold = settings.FREE_DELIVERY_THRESHOLD if threshold is None else threshold

    if has_meal:
        return 0
    if subtotal < threshold:
        return fee
    return 0


class OrderCodeGenerator:
    """
    Коды заказов вида AT<13 цифр мс><4 hex>.

    Миллисекунды принудительно растут внутри процесса (даже при нескольких
    вызовах за одну мс), случайный суффикс разводит разные процессы.
    """

    def __init__(self, prefix: str = "AT", clock=None):
        self.prefix = prefix
        self.clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._last_ms = 0
        self._lock = threading.Lock()

    def next_ms(self) -> int:
        with self._lock:
            now = self.clock()
            if now <= self._last_ms:
                now = self._last_ms + 1
            self._last_ms = now
            return now

    def __call__(self) -> str:
        return f"{self.prefix}{self.next_ms():013d}{secrets.token_hex(2).upper()}"


new_order_code = OrderCodeGenerator()
