"""
User write model.

Used only for INSERT/UPDATE/DELETE. Reads go through
``msdata.infra.db.models.user_query.UserReadModel``.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from msdata.infra.db.base import CommandBase, UTCDateTime


def next_version(current: Optional[int]) -> int:
    """Version generator: 0 on insert, +1 on every update."""
    return 0 if current is None else current + 1


class User(CommandBase):
    """
    A user as seen by the command side.

    ``version`` is compared-and-swapped by the store on every UPDATE; a
    mismatch raises ``StaleDataError`` at flush time.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": next_version,
    }

    def rename(self, name: str, now: datetime) -> None:
        """Change the name and bump ``updated_at``."""
        self.name = name
        # The clock may not advance between two writes of the same row
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, version={self.version})>"
