from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class ItemList(Base):
    __tablename__ = "list"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    items = relationship("Item", back_populates="item_list", passive_deletes="all")


class Item(Base):
    __tablename__ = "item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # RESTRICT keeps a non-empty list from being deleted
    list_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("list.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    item_list = relationship("ItemList", back_populates="items")
