# tiffin/utils/database.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from tiffin.config import settings

# ────────────── Base для моделей ──────────────
Base = declarative_base()  # базовый класс для всех моделей SQLAlchemy

# ────────────── Асинхронный движок ──────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO  # True можно включить для отладки SQL
)

# ────────────── Асинхронная сессия ──────────────
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # объекты остаются читаемыми после commit
)

# ────────────── Инициализация базы данных ──────────────
async def init_db(bind=None, session_factory=None):
    """
    Создаёт все таблицы в базе данных (если ещё не созданы)
    и добавляет недостающие позиции меню по умолчанию.
    """
    # модели должны быть импортированы до create_all
    from tiffin.models import menu, order  # noqa: F401
    from tiffin.services.menu import seed_menu

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with (session_factory or AsyncSessionLocal)() as session:
        return await seed_menu(session)
