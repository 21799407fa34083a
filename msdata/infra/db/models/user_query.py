"""
User read model.

Maps the same ``users`` table as the write model, without the version
column. Instances are only ever loaded, never created or modified; query
sessions refuse to flush.
"""
from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from msdata.infra.db.base import QueryBase, UTCDateTime


class UserReadModel(QueryBase):
    """A user as seen by the query side."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime)

    def __repr__(self) -> str:
        return f"<UserReadModel(id={self.id}, email={self.email})>"
