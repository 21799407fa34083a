"""
SQLAlchemy models for the users table.

Exports both projections for easy importing.
"""
from msdata.infra.db.base import CommandBase, QueryBase
from msdata.infra.db.models.user_command import User
from msdata.infra.db.models.user_query import UserReadModel

__all__ = [
    "CommandBase",
    "QueryBase",
    "User",
    "UserReadModel",
]
