# tiffin/models/menu.py

from sqlalchemy import Column, Integer, String, Boolean
from tiffin.utils.database import Base

MEAL = "meal"
TIFFIN = "tiffin"

class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name      = Column(String, unique=True, nullable=False)
    price     = Column(Integer, nullable=False)        # цена в рупиях, целое число
    image     = Column(String, nullable=True)
    category  = Column(String, nullable=False, default=TIFFIN)   # "meal" отменяет плату за доставку
    available = Column(Boolean, nullable=False, default=True)
