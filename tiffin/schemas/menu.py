# tiffin/schemas/menu.py

from typing import Optional
from pydantic import BaseModel, ConfigDict

class MenuItem(BaseModel):
    id: int
    name: str
    price: int
    image: Optional[str] = None
    category: str
    available: bool

    model_config = ConfigDict(from_attributes=True)

class ToggleItem(BaseModel):
    id: int
    available: bool
