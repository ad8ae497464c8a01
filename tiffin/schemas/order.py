# tiffin/schemas/order.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_QUANTITY = 100


# ────────────── Корзина ──────────────
class CartLine(BaseModel):
    name: str
    quantity: int = Field(1, ge=1, le=MAX_QUANTITY, description="Количество, по умолчанию 1")


class OrderCreate(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    items: List[CartLine] = Field(default_factory=list)
    subtotal: Optional[int] = None


class PaymentHandle(BaseModel):
    """Что нужно клиенту для открытия окна оплаты."""
    model_config = ConfigDict(populate_by_name=True)

    key: str
    amount: int
    gateway_order_id: str = Field(..., alias="gatewayOrderId")
    order_code: str = Field(..., alias="orderCode")


# ────────────── Проверка оплаты ──────────────
class PaymentVerify(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_order_id: str = Field(..., alias="gatewayOrderId")
    gateway_payment_id: str = Field(..., alias="gatewayPaymentId")
    signature: str
    order_code: str = Field(..., alias="orderCode")


class ApproveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_code: str = Field(..., alias="orderCode")


# ────────────── Ответы ──────────────
class LineItem(BaseModel):
    name: str
    quantity: int
    price: int


class Order(BaseModel):
    code: str
    name: str
    mobile: str
    address: str
    items: List[LineItem]
    subtotal: int
    delivery: int
    total: int
    gateway_order_id: Optional[str] = None
    payment_status: str
    order_status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerOrder(BaseModel):
    """Строка в истории заказов клиента."""
    model_config = ConfigDict(populate_by_name=True)

    order_code: str = Field(..., alias="orderCode")
    total: int
    created_at: datetime = Field(..., alias="createdAt")
    order_status: str = Field(..., alias="orderStatus")


class OrderStatusResponse(BaseModel):
    order_status: str


class SuccessResponse(BaseModel):
    success: bool
