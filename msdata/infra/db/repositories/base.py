"""
Base repository class with common lookups.

Repositories never commit or roll back. They are bound to a session opened
by a transaction scope (``Database.command_transaction`` or
``Database.query_transaction``), which owns the transaction boundary.
"""
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing lookups by primary key.

    Inherit from this class and specify the model type:
        class UserQueryRepository(BaseRepository[UserReadModel]):
            def __init__(self, session: AsyncSession):
                super().__init__(UserReadModel, session)
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def find_by_id(self, id: int) -> Optional[ModelType]:
        """Get a record by ID."""
        stmt = select(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_by_id(self, id: int) -> bool:
        """Check if a record exists."""
        stmt = select(self.model.id).where(self.model.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def count(self) -> int:
        """Count all records."""
        stmt = select(func.count()).select_from(self.model)
        result = await self.session.execute(stmt)
        return result.scalar_one()
