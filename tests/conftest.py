"""
Shared fixtures.

Every test gets its own SQLite file so the command and query engines really
are two connections to one store.
"""
import time
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from msdata.config import Settings
from msdata.infra.db.session import Database
from msdata.services.user_service import UserService

JWT_SECRET = "test-only-hs256-secret-0123456789abcdef"


class SteppingClock:
    """Deterministic clock: each call advances by ``step``."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        command_database_url=f"sqlite+aiosqlite:///{(tmp_path / 'users.db').as_posix()}",
        jwt_secret=JWT_SECRET,
        jwt_algorithms=["HS256"],
        request_timeout_seconds=5.0,
        log_level="WARNING",
    )


@pytest.fixture
async def database(settings):
    db = Database.from_settings(settings)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock(datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(database, clock) -> UserService:
    return UserService(database, clock=clock)


@pytest.fixture
def make_token():
    """Mint HS256 tokens the way the identity provider would."""

    def _make(subject: str = "alice", groups=("users",), expires_in: int = 300, secret: str = JWT_SECRET, **claims):
        payload = {"sub": subject, "exp": int(time.time()) + expires_in, **claims}
        if groups is not None:
            payload["groups"] = list(groups)
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make
