# tiffin/routes/order.py

from fastapi import APIRouter, Depends, Request, status
from typing import List
from tiffin.schemas.order import (
    ApproveRequest,
    CustomerOrder,
    Order,
    OrderCreate,
    OrderStatusResponse,
    PaymentHandle,
    PaymentVerify,
    SuccessResponse,
)
from tiffin.services.order import OrderLifecycle
from tiffin.routes.auth import admin_required

router = APIRouter()

# ────────────── CREATE ──────────────
@router.post(
    "/create-order",
    response_model=PaymentHandle,
    status_code=status.HTTP_200_OK,
    summary="Создать заказ и транзакцию в платёжном шлюзе",
    response_description="Данные для открытия окна оплаты",
    responses={
        200: {
            "description": "Заказ создан, ожидает оплаты",
            "content": {
                "application/json": {
                    "example": {
                        "key": "rzp_test_xxx",
                        "amount": 50,
                        "gatewayOrderId": "order_N5aGx1",
                        "orderCode": "AT1760870400000A1B2",
                    }
                }
            },
        },
        400: {"description": "Неверные или неполные данные корзины"},
        409: {"description": "Код заказа уже занят"},
        502: {"description": "Платёжный шлюз недоступен"},
    },
)
async def create_order(request: Request, cart: OrderCreate):
    lifecycle = OrderLifecycle.from_request(request)
    try:
        return await lifecycle.create_order(cart)
    except Exception as e:
        await request.app.state.log.log_error("order", f"Ошибка при создании заказа: {e!r}", {
            "mobile": cart.mobile
        })
        raise


# ────────────── VERIFY PAYMENT ──────────────
@router.post(
    "/verify-payment",
    response_model=SuccessResponse,
    summary="Проверить подпись оплаты",
    responses={
        200: {"description": "success=true – оплачено, success=false – подпись не совпала"},
        404: {"description": "Заказ не найден"},
    },
)
async def verify_payment(request: Request, payload: PaymentVerify):
    lifecycle = OrderLifecycle.from_request(request)
    success = await lifecycle.verify_payment(
        payload.order_code,
        payload.gateway_order_id,
        payload.gateway_payment_id,
        payload.signature,
    )
    return {"success": success}


# ────────────── ADMIN: READ ALL ──────────────
@router.get(
    "/orders",
    response_model=List[Order],
    summary="Все заказы, новые сверху",
    responses={
        200: {"description": "Список заказов"},
        403: {"description": "Неверный ключ администратора"},
    },
)
async def read_orders(
    request: Request,
    skip: int = 0,
    limit: int | None = None,
    _: bool = Depends(admin_required),
):
    lifecycle = OrderLifecycle.from_request(request)
    return await lifecycle.all_orders(skip, limit)


# ────────────── ADMIN: APPROVE ──────────────
@router.post(
    "/approve/{code}",
    response_model=SuccessResponse,
    summary="Подтвердить заказ",
    responses={
        200: {"description": "Заказ подтверждён (повторный вызов тоже 200)"},
        403: {"description": "Неверный ключ администратора"},
        404: {"description": "Заказ не найден"},
    },
)
async def approve(code: str, request: Request, _: bool = Depends(admin_required)):
    lifecycle = OrderLifecycle.from_request(request)
    await lifecycle.approve_order(code)
    return {"success": True}


@router.post(
    "/approve-order",
    response_model=SuccessResponse,
    summary="Подтвердить заказ (код в теле запроса)",
    responses={
        200: {"description": "Заказ подтверждён"},
        403: {"description": "Неверный ключ администратора"},
        404: {"description": "Заказ не найден"},
    },
)
async def approve_order(payload: ApproveRequest, request: Request, _: bool = Depends(admin_required)):
    lifecycle = OrderLifecycle.from_request(request)
    await lifecycle.approve_order(payload.order_code)
    return {"success": True}


# ────────────── CUSTOMER ──────────────
@router.get(
    "/order-status/{code}",
    response_model=OrderStatusResponse,
    summary="Статус заказа",
    response_description="Для неизвестного кода возвращается Pending",
)
async def order_status(code: str, request: Request):
    lifecycle = OrderLifecycle.from_request(request)
    return {"order_status": await lifecycle.order_status(code)}


@router.get(
    "/my-orders/{mobile}",
    response_model=List[CustomerOrder],
    summary="Заказы клиента по номеру телефона",
)
async def my_orders(mobile: str, request: Request):
    lifecycle = OrderLifecycle.from_request(request)
    return await lifecycle.customer_orders(mobile)
