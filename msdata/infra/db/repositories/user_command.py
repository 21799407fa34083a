"""
User command repository (write path).
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from msdata.errors import ConflictError, DuplicateEmailError
from msdata.infra.db.models.user_command import User
from msdata.infra.db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def _is_email_violation(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: users.email"
    # PostgreSQL: 'duplicate key value violates unique constraint "uq_users_email"'
    message = str(error.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


class UserCommandRepository(BaseRepository[User]):
    """
    Repository for mutating users.

    Changes are flushed so that ids, versions and constraint violations are
    known immediately, but only the surrounding command transaction commits.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def exists_by_email(self, email: str) -> bool:
        """True if a user with this email currently exists."""
        stmt = select(User.id).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def save(self, user: User) -> User:
        """
        Insert a new user or update an existing one.

        Users without an id are inserted. Otherwise an UPDATE guarded by the
        loaded version is issued.

        Raises:
            ConflictError: The stored version no longer matches.
            DuplicateEmailError: The store rejected the email as a duplicate.
        """
        # A failed flush expires the instance; capture what the errors need
        user_id, version, email = user.id, user.version, user.email
        self.session.add(user)
        try:
            await self.session.flush()
        except StaleDataError as e:
            logger.warning(f"Optimistic lock failure on user {user_id} (version {version})")
            raise ConflictError(
                f"User {user_id} was modified concurrently; reload and retry"
            ) from e
        except IntegrityError as e:
            if _is_email_violation(e):
                raise DuplicateEmailError(email) from e
            raise
        return user

    async def delete_by_id(self, id: int) -> None:
        """Delete a user. Missing ids are a no-op."""
        await self.session.execute(delete(User).where(User.id == id))
