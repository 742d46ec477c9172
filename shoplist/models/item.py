"""Item model."""

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shoplist.models.base import Base


class Item(Base):
    """A single entry on the shopping list."""

    __tablename__ = "items"
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted last row again
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r}>"
