# tiffin/services/menu.py

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tiffin.errors import NotFoundError
from tiffin.models.menu import MenuItem, MEAL, TIFFIN

# (название, цена, картинка, категория)
DEFAULT_MENU = [
    ("Idli (3)", 20, "idli.jpg", TIFFIN),
    ("Plain Dosa", 20, "dosa.jpg", TIFFIN),
    ("Podi Dosa", 25, "dosa.jpg", TIFFIN),
    ("Onion Dosa", 25, "dosa.jpg", TIFFIN),
    ("Karam Dosa", 25, "dosa.jpg", TIFFIN),
    ("Masala Dosa", 35, "masala-dosa.jpg", TIFFIN),
    ("Egg Masala Dosa", 50, "egg-dosa.jpg", TIFFIN),
    ("Ghee Dosa", 40, "dosa.jpg", TIFFIN),
    ("Kal Dosa (2)", 45, "dosa.jpg", TIFFIN),
    ("Chapati (3)", 60, "chapathi.jpg", TIFFIN),
    ("Single Egg Dosa", 35, "egg-dosa.jpg", TIFFIN),
    ("Double Egg Dosa", 45, "egg-dosa.jpg", TIFFIN),
    ("Omelette / Half Boil", 15, "omelette.jpg", TIFFIN),
    ("Bajji (2)", 20, "bajji.jpg", TIFFIN),
    ("Egg Bajji (2)", 20, "egg-bajji.jpg", TIFFIN),
    ("Potato Bajji (2)", 20, "potato-bajji.jpg", TIFFIN),
    ("Bonda (6)", 20, "bonda.jpg", TIFFIN),
    ("Onion Bonda (2)", 20, "onion-bonda.jpg", TIFFIN),
    ("Mysore Bonda (2)", 20, "mysore-bonda.jpg", TIFFIN),
    ("Sweet Bonda (3)", 20, "sweet-bonda.jpg", TIFFIN),
    ("Veg Meals", 100, "veg-meals.jpg", MEAL),
    ("Non-Veg Meals", 120, "non-veg-meals.jpg", MEAL),
]


async def seed_menu(db: AsyncSession) -> int:
    """Добавляет недостающие позиции меню. Возвращает число добавленных."""
    result = await db.execute(select(MenuItem.name))
    existing = set(result.scalars().all())

    added = 0
    for name, price, image, category in DEFAULT_MENU:
        if name in existing:
            continue
        db.add(MenuItem(name=name, price=price, image=image, category=category, available=True))
        added += 1

    if added:
        await db.commit()
    return added


async def list_items(db: AsyncSession) -> list[MenuItem]:
    result = await db.execute(select(MenuItem).order_by(MenuItem.id))
    return list(result.scalars().all())


async def items_by_name(db: AsyncSession, names) -> dict[str, MenuItem]:
    result = await db.execute(select(MenuItem).where(MenuItem.name.in_(list(set(names)))))
    return {item.name: item for item in result.scalars().all()}


async def toggle_item(db: AsyncSession, item_id: int, available: bool) -> MenuItem:
    """Включает/выключает позицию меню (админ)."""
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError(item_id, what="Menu item")

    item.available = available
    await db.commit()
    return item
