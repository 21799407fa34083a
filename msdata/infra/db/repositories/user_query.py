"""
User query repository (read path).

Every method is a plain SELECT against the read projection.
"""
import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from msdata.infra.db.models.user_query import UserReadModel
from msdata.infra.db.repositories.base import BaseRepository

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results plus total-count metadata. Pages are 1-based."""

    items: List[T]
    total: int
    page: int
    size: int
    pages: int = field(init=False)

    def __post_init__(self):
        self.pages = math.ceil(self.total / self.size) if self.size else 0


class UserQueryRepository(BaseRepository[UserReadModel]):
    """Repository for reading users."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserReadModel, session)

    async def find_by_email(self, email: str) -> Optional[UserReadModel]:
        stmt = select(UserReadModel).where(UserReadModel.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_name_containing(self, substring: str) -> List[UserReadModel]:
        """
        Users whose name contains ``substring`` anywhere.

        ``%`` and ``_`` in the input match literally. Case sensitivity
        follows the store's LIKE semantics.
        """
        stmt = (
            select(UserReadModel)
            .where(UserReadModel.name.contains(substring, autoescape=True))
            .order_by(UserReadModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_all(self, page: int, size: int) -> Page[UserReadModel]:
        """Get one page of users ordered by id."""
        total = await self.count_all_users()
        stmt = (
            select(UserReadModel)
            .order_by(UserReadModel.id)
            .offset((page - 1) * size)
            .limit(size)
        )
        result = await self.session.execute(stmt)
        return Page(items=list(result.scalars().all()), total=total, page=page, size=size)

    async def find_recent_users(self, limit: int) -> List[UserReadModel]:
        """Newest users first, at most ``limit`` of them."""
        stmt = (
            select(UserReadModel)
            .order_by(UserReadModel.created_at.desc(), UserReadModel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_all_users(self) -> int:
        return await self.count()
