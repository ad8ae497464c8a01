# tiffin/services/order.py

from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request

from tiffin.config import settings
from tiffin.errors import GatewayError, NotFoundError, ValidationError
from tiffin.models.menu import MEAL
from tiffin.models.order import Order as OrderModel, OrderStatus, PaymentStatus
from tiffin.schemas.order import OrderCreate, PaymentHandle, CustomerOrder
from tiffin.services import menu
from tiffin.services.gateway import PaymentGateway
from tiffin.services.notifier import Notification, NotificationQueue
from tiffin.services.pricing import delivery_fee, new_order_code
from tiffin.services.store import OrderStore
from tiffin.utils.security import verify_payment_signature


class OrderLifecycle:
    """
    Жизненный цикл заказа:
      - create_order: корзина → цена → транзакция в шлюзе → заказ (Created/Pending)
      - verify_payment: проверка подписи шлюза → Paid | Failed
      - approve_order: Pending → Approved + уведомление клиенту (через очередь)
    """

    def __init__(
        self,
        store: OrderStore,
        gateway: PaymentGateway,
        log,
        notifications: Optional[NotificationQueue] = None,
        gateway_secret: str = None,
        currency: str = None,
        code_factory: Callable[[], str] = new_order_code,
    ):
        self.store = store
        self.gateway = gateway
        self.log = log
        self.notifications = notifications
        self.gateway_secret = gateway_secret or settings.GATEWAY_KEY_SECRET
        self.currency = currency or settings.GATEWAY_CURRENCY
        self.code_factory = code_factory

    @classmethod
    def from_request(cls, request: Request) -> "OrderLifecycle":
        """Собирает менеджер из request.state.db и объектов в app.state."""
        state = request.app.state
        return cls(
            store=OrderStore(request.state.db),
            gateway=state.gateway,
            log=state.log,
            notifications=getattr(state, "notifications", None),
        )

    # ------------------------------
    # Проверка корзины и расчёт цены
    # ------------------------------
    async def price_cart(self, cart: OrderCreate) -> tuple[list[dict], int, int, int]:
        """
        Снимок позиций корзины по текущему меню.
        Возвращает (items, subtotal, delivery, total).
        """
        for field in ("name", "mobile", "address"):
            value = getattr(cart, field)
            if value is None or not str(value).strip():
                raise ValidationError(f"Field '{field}' is required")

        if not cart.items:
            raise ValidationError("Cart is empty")
        if cart.subtotal is None:
            raise ValidationError("Field 'subtotal' is required")
        if cart.subtotal < 0:
            raise ValidationError("Field 'subtotal' must be >= 0")

        known = await menu.items_by_name(self.store.db, [line.name for line in cart.items])

        items = []
        has_meal = False
        for line in cart.items:
            item = known.get(line.name)
            if item is None:
                raise ValidationError(f"Unknown menu item: {line.name}")
            if not item.available:
                raise ValidationError(f"Menu item is not available: {line.name}")
            if item.category == MEAL:
                has_meal = True
            items.append({"name": item.name, "quantity": line.quantity, "price": item.price})

        subtotal = sum(i["quantity"] * i["price"] for i in items)
        if subtotal != cart.subtotal:
            raise ValidationError(f"Subtotal mismatch: expected {subtotal}, got {cart.subtotal}")

        delivery = delivery_fee(subtotal, has_meal)
        return items, subtotal, delivery, subtotal + delivery

    # ------------------------------
    # Создание заказа
    # ------------------------------
    async def create_order(self, cart: OrderCreate) -> PaymentHandle:
        items, subtotal, delivery, total = await self.price_cart(cart)

        # код назначается до обращения к шлюзу и уходит туда как receipt
        code = self.code_factory()

        try:
            gateway_order_id = await self.gateway.create_transaction(total * 100, self.currency, code)
        except GatewayError as e:
            await self.log.log_error("order", f"Шлюз не создал транзакцию: {e}", {"code": code, "total": total})
            raise
        except Exception as e:
            await self.log.log_error("order", f"Ошибка вызова шлюза: {e!r}", {"code": code, "total": total})
            raise GatewayError(str(e)) from e

        order = OrderModel(
            code=code,
            name=cart.name.strip(),
            mobile=cart.mobile.strip(),
            address=cart.address.strip(),
            items=items,
            subtotal=subtotal,
            delivery=delivery,
            total=total,
            gateway_order_id=gateway_order_id,
            payment_status=PaymentStatus.CREATED.value,
            order_status=OrderStatus.PENDING.value,
            created_at=datetime.now(timezone.utc),
        )
        await self.store.insert(order)

        await self.log.log_info("order", "Заказ создан", {
            "code": code, "total": total, "delivery": delivery, "gateway_order_id": gateway_order_id
        })
        return PaymentHandle(
            key=self.gateway.key_id,
            amount=total,
            gateway_order_id=gateway_order_id,
            order_code=code,
        )

    # ------------------------------
    # Подтверждение оплаты
    # ------------------------------
    async def verify_payment(
        self, order_code: str, gateway_order_id: str, gateway_payment_id: str, signature: str
    ) -> bool:
        order = await self.store.find_by_code(order_code)
        if order is None:
            await self.log.log_warning("payment", "Проверка оплаты для неизвестного заказа", {"code": order_code})
            raise NotFoundError(order_code)

        valid = verify_payment_signature(self.gateway_secret, gateway_order_id, gateway_payment_id, signature)
        status = PaymentStatus.PAID if valid else PaymentStatus.FAILED

        changed = await self.store.update_payment_status(order_code, status)
        if changed:
            await self.log.log_info("payment", f"Оплата: {status.value}", {
                "code": order_code, "gateway_order_id": gateway_order_id, "payment_id": gateway_payment_id
            })
            return valid

        # статус уже окончательный, повторная проверка ничего не меняет
        current = await self.store.find_by_code(order_code)
        await self.log.log_warning("payment", "Повторная проверка оплаты проигнорирована", {
            "code": order_code, "payment_status": current.payment_status, "signature_valid": valid
        })
        return valid and current.payment_status == PaymentStatus.PAID.value

    # ------------------------------
    # Подтверждение заказа администратором
    # ------------------------------
    async def approve_order(self, order_code: str) -> OrderModel:
        order = await self.store.find_by_code(order_code)
        if order is None:
            await self.log.log_warning("order", "Подтверждение неизвестного заказа", {"code": order_code})
            raise NotFoundError(order_code)

        changed = await self.store.update_order_status(order_code, OrderStatus.APPROVED)
        if not changed:
            await self.log.log_info("order", "Заказ уже подтверждён", {"code": order_code})
            return order

        order.order_status = OrderStatus.APPROVED.value
        await self.log.log_info("order", "Заказ подтверждён", {"code": order_code})
        await self.notify_approved(order)
        return order

    async def notify_approved(self, order: OrderModel):
        """Ставит уведомление в очередь. Заказ уже подтверждён, ошибки здесь только логируются."""
        if self.notifications is None:
            return
        try:
            message = settings.APPROVAL_TEMPLATE.format(
                name=order.name, code=order.code, total=order.total
            )
            self.notifications.emit(Notification(
                channel=settings.MESSAGING_CHANNEL,
                recipient=order.mobile,
                message=message,
            ))
        except Exception as e:
            await self.log.log_error("notify", f"Уведомление о подтверждении не создано: {e!r}", {
                "code": order.code
            })

    # ------------------------------
    # Чтение
    # ------------------------------
    async def order_status(self, order_code: str) -> str:
        order = await self.store.find_by_code(order_code)
        if order is None:
            return OrderStatus.PENDING.value
        return order.order_status

    async def customer_orders(self, mobile: str) -> list[CustomerOrder]:
        orders = await self.store.list_by_mobile(mobile.strip())
        return [
            CustomerOrder(
                order_code=o.code,
                total=o.total,
                created_at=o.created_at,
                order_status=o.order_status,
            )
            for o in orders
        ]

    async def all_orders(self, skip: int = 0, limit: int | None = None) -> list[OrderModel]:
        orders = await self.store.list_all(skip, limit)
        await self.log.log_info("order", f"{len(orders)} заказов загружено")
        return orders
