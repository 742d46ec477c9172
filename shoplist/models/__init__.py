"""Database models.

Import all SQLAlchemy models here so they are registered on the metadata
before the schema is created.
"""

from shoplist.models.base import Base
from shoplist.models.item import Item

__all__ = ["Base", "Item"]
