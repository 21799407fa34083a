"""
Repository layer for database operations.

Command repositories mutate, query repositories only read.
"""
from msdata.infra.db.repositories.base import BaseRepository
from msdata.infra.db.repositories.user_command import UserCommandRepository
from msdata.infra.db.repositories.user_query import Page, UserQueryRepository

__all__ = [
    "BaseRepository",
    "Page",
    "UserCommandRepository",
    "UserQueryRepository",
]
