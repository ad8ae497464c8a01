# tiffin/utils/security.py

"""
Подписи платёжного шлюза и проверка ключа администратора.
Все сравнения секретов выполняются через hmac.compare_digest (постоянное время).
"""

import hashlib
import hmac


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """
    Считает подпись платежа так же, как её считает шлюз.

    :param secret: общий секрет шлюза (GATEWAY_KEY_SECRET)
    :param gateway_order_id: id транзакции на стороне шлюза
    :param gateway_payment_id: id платежа на стороне шлюза
    :return: HMAC-SHA256 от "order_id|payment_id" в hex
    """
    body = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_payment_signature(
    secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str | None
) -> bool:
    """
    Проверяет подпись платежа.

    :return: True если подпись совпала, иначе False
    """
    if not signature:
        return False
    expected = payment_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def check_admin_key(supplied: str | None, expected: str) -> bool:
    """Сравнивает ключ из запроса с настроенным ключом администратора."""
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
