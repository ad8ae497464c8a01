# tiffin/services/store.py

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tiffin.errors import ConflictError
from tiffin.models.order import Order as OrderModel, OrderStatus, PaymentStatus


class OrderStore:
    """
    Хранилище заказов поверх AsyncSession.

    Смена статусов: один UPDATE с условием на текущий статус (compare-and-set),
    так что параллельные запросы по одному заказу не перетирают друг друга.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(order.code)
        await self.db.refresh(order)
        return order

    async def update_payment_status(
        self, code: str, status: PaymentStatus, expected: PaymentStatus | None = PaymentStatus.CREATED
    ) -> bool:
        """True, если строка реально изменилась."""
        stmt = update(OrderModel).where(OrderModel.code == code)
        if expected is not None:
            stmt = stmt.where(OrderModel.payment_status == expected.value)
        result = await self.db.execute(stmt.values(payment_status=status.value))
        await self.db.commit()
        return result.rowcount > 0

    async def update_order_status(
        self, code: str, status: OrderStatus, expected: OrderStatus | None = OrderStatus.PENDING
    ) -> bool:
        stmt = update(OrderModel).where(OrderModel.code == code)
        if expected is not None:
            stmt = stmt.where(OrderModel.order_status == expected.value)
        result = await self.db.execute(stmt.values(order_status=status.value))
        await self.db.commit()
        return result.rowcount > 0

    async def find_by_code(self, code: str) -> OrderModel | None:
        result = await self.db.execute(
            select(OrderModel).where(OrderModel.code == code).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_all(self, skip: int = 0, limit: int | None = None) -> list[OrderModel]:
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_by_mobile(self, mobile: str) -> list[OrderModel]:
        result = await self.db.execute(
            select(OrderModel)
            .where(OrderModel.mobile == mobile)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())
