# tiffin/models/order.py

import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from tiffin.utils.database import Base


class PaymentStatus(str, enum.Enum):
    CREATED = "Created"
    PAID = "Paid"
    FAILED = "Failed"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)  # внутренний ключ

    code     = Column(String, unique=True, index=True, nullable=False)   # код заказа для клиента
    name     = Column(String, nullable=False)                            # Покупатель
    mobile   = Column(String, index=True, nullable=False)                # Телефон
    address  = Column(Text, nullable=False)                              # Адрес доставки
    items    = Column(JSON, nullable=False)                              # [{name, quantity, price}]
    subtotal = Column(Integer, nullable=False)
    delivery = Column(Integer, nullable=False)
    total    = Column(Integer, nullable=False)

    gateway_order_id = Column(String, nullable=True)                     # id транзакции в шлюзе
    payment_status   = Column(String, nullable=False, default=PaymentStatus.CREATED.value)
    order_status     = Column(String, nullable=False, default=OrderStatus.PENDING.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
