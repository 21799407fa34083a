"""
User Service.

Sole entry point for user operations. Commands and queries run in separate
transaction scopes on separate engines:

- commands: ``Database.command_transaction()``, committed or rolled back
- queries: ``Database.query_transaction()``, read-only

All business rules are checked before any write is issued. The service holds
no state between calls and is safe to share across concurrent requests.
"""
import logging
from typing import List, Optional

from msdata.errors import ConflictError, DuplicateEmailError, NotFoundError, ValidationError
from msdata.infra.db.models import User, UserReadModel
from msdata.infra.db.repositories import Page, UserCommandRepository, UserQueryRepository
from msdata.infra.db.session import Database
from msdata.utils.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255

# Largest value a BIGINT id or OFFSET can hold
MAX_ID = 2 ** 63 - 1


def _is_storable_id(user_id: int) -> bool:
    return 1 <= user_id <= MAX_ID


def _require_text(value: Optional[str], field: str, max_length: int) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


class UserService:
    """Users CRUD with separate command and query paths."""

    def __init__(self, database: Database, clock: Clock = utc_now, max_page_size: int = 100):
        self.database = database
        self.clock = clock
        self.max_page_size = max_page_size

    # =========================================================================
    # Commands
    # =========================================================================

    async def create_user(self, name: str, email: str) -> User:
        """
        Create a user.

        Raises:
            DuplicateEmailError: The email is already registered.
            ValidationError: Name or email is blank or too long.
        """
        name = _require_text(name, "name", NAME_MAX_LENGTH)
        email = _require_text(email, "email", EMAIL_MAX_LENGTH)

        async with self.database.command_transaction() as session:
            repo = UserCommandRepository(session)
            if await repo.exists_by_email(email):
                logger.warning(f"Rejected user creation, email already exists: {email}")
                raise DuplicateEmailError(email)

            now = self.clock()
            user = await repo.save(User(name=name, email=email, created_at=now, updated_at=now))

        logger.info(f"Created user {user.id} ({user.email})")
        return user

    async def update_user_name(
        self,
        user_id: int,
        new_name: str,
        expected_version: Optional[int] = None,
    ) -> User:
        """
        Rename a user.

        When ``expected_version`` is given it must match the stored version.
        Either way the UPDATE itself is version-guarded, so a concurrent
        commit between load and save is also reported. No retry is attempted.

        Raises:
            NotFoundError: No user with this id.
            ConflictError: The user was modified by someone else.
        """
        new_name = _require_text(new_name, "name", NAME_MAX_LENGTH)

        async with self.database.command_transaction() as session:
            repo = UserCommandRepository(session)
            user = await repo.find_by_id(user_id) if _is_storable_id(user_id) else None
            if user is None:
                raise NotFoundError(user_id)
            if expected_version is not None and expected_version != user.version:
                raise ConflictError(
                    f"User {user_id} is at version {user.version}, not {expected_version}; reload and retry"
                )

            user.rename(new_name, self.clock())
            user = await repo.save(user)

        logger.info(f"Renamed user {user.id} (version {user.version})")
        return user

    async def delete_user(self, user_id: int) -> None:
        """
        Delete a user.

        Raises:
            NotFoundError: No user with this id.
        """
        async with self.database.command_transaction() as session:
            repo = UserCommandRepository(session)
            if not _is_storable_id(user_id) or not await repo.exists_by_id(user_id):
                raise NotFoundError(user_id)
            await repo.delete_by_id(user_id)

        logger.info(f"Deleted user {user_id}")

    # =========================================================================
    # Queries
    # =========================================================================

    async def find_user_by_id(self, user_id: int) -> Optional[UserReadModel]:
        if not _is_storable_id(user_id):
            return None
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).find_by_id(user_id)

    async def find_user_by_email(self, email: str) -> Optional[UserReadModel]:
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).find_by_email(email)

    async def search_users_by_name(self, name: str) -> List[UserReadModel]:
        """Partial name search. An empty string matches every user."""
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).find_by_name_containing(name)

    async def list_users(self, page: int = 1, size: int = 20) -> Page[UserReadModel]:
        """Paginated listing, 1-based pages."""
        if page < 1:
            raise ValidationError("page must be >= 1")
        if size < 1 or size > self.max_page_size:
            raise ValidationError(f"size must be between 1 and {self.max_page_size}")
        if (page - 1) * size > MAX_ID:
            raise ValidationError("page is out of range")
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).find_all(page, size)

    async def get_recent_users(self, limit: int) -> List[UserReadModel]:
        if limit < 1:
            raise ValidationError("limit must be positive")
        if limit > self.max_page_size:
            raise ValidationError(f"limit must be at most {self.max_page_size}")
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).find_recent_users(limit)

    async def count_users(self) -> int:
        async with self.database.query_transaction() as session:
            return await UserQueryRepository(session).count_all_users()
