"""Tests for payment signatures and the admin key check."""

import hashlib
import hmac

from tiffin.utils.security import check_admin_key, payment_signature, verify_payment_signature


def test_signature_is_hmac_sha256_hex():
    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert payment_signature("secret", "order_1", "pay_1") == expected


def test_verify_accepts_matching_signature():
    sig = payment_signature("secret", "order_1", "pay_1")
    assert verify_payment_signature("secret", "order_1", "pay_1", sig) is True


def test_verify_rejects_wrong_inputs():
    sig = payment_signature("secret", "order_1", "pay_1")
    assert verify_payment_signature("other", "order_1", "pay_1", sig) is False
    assert verify_payment_signature("secret", "order_2", "pay_1", sig) is False
    assert verify_payment_signature("secret", "order_1", "pay_1", sig.upper()) is False
    assert verify_payment_signature("secret", "order_1", "pay_1", "") is False
    assert verify_payment_signature("secret", "order_1", "pay_1", None) is False


def test_admin_key():
    assert check_admin_key("k", "k") is True
    assert check_admin_key("x", "k") is False
    assert check_admin_key(None, "k") is False
    # пустой настроенный ключ ничего не открывает
    assert check_admin_key("", "") is False
