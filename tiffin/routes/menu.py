# tiffin/routes/menu.py

from typing import List

from fastapi import APIRouter, Depends, Request

from tiffin.routes.auth import admin_required
from tiffin.schemas.menu import MenuItem, ToggleItem
from tiffin.schemas.order import SuccessResponse
from tiffin.services import menu

router = APIRouter()


@router.get(
    "/items",
    response_model=List[MenuItem],
    summary="Меню",
)
async def read_items(request: Request):
    return await menu.list_items(request.state.db)


@router.post(
    "/toggle-item",
    response_model=SuccessResponse,
    summary="Включить/выключить позицию меню",
    responses={
        403: {"description": "Неверный ключ администратора"},
        404: {"description": "Позиция не найдена"},
    },
)
async def toggle_item(body: ToggleItem, request: Request, _: bool = Depends(admin_required)):
    item = await menu.toggle_item(request.state.db, body.id, body.available)
    await request.app.state.log.log_info("menu", "Доступность изменена", {
        "id": item.id, "name": item.name, "available": item.available
    })
    return {"success": True}
