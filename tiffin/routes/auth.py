# tiffin/routes/auth.py

from typing import Optional

from fastapi import Query, Request

from tiffin.config import settings
from tiffin.errors import AdminKeyError
from tiffin.utils.security import check_admin_key


async def admin_required(request: Request, key: Optional[str] = Query(None, description="Ключ администратора")):
    """
    Пропускает запрос только с верным ?key=...

    Ключ читается из settings при каждой проверке, поэтому его можно сменить
    на лету (settings.ADMIN_KEY = ...) без перезапуска.

    **Статусы:**
    - 403 Forbidden – ключ отсутствует или неверный
    """
    if not check_admin_key(key, settings.ADMIN_KEY):
        log = getattr(request.app.state, "log", None)
        if log:
            await log.log_warning("auth", "Неверный ключ администратора", {"path": request.url.path})
        raise AdminKeyError()
    return True
