"""
API Schemas for Users.

Output rules: null fields are dropped by the routes
(``response_model_exclude_none``), timestamps are rendered in the caller's
timezone with their offset. Input rules: unknown fields are ignored.
"""
from datetime import datetime, tzinfo
from typing import Optional, Union

from pydantic import BaseModel, EmailStr, Field

from msdata.infra.db.models import User, UserReadModel
from msdata.infra.db.repositories import Page
from msdata.utils.time_utils import to_timezone


# ============================================================================
# Request Models
# ============================================================================

class UserCreate(BaseModel):
    """Request to create a user."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr

    class Config:
        extra = "ignore"


class UserUpdate(BaseModel):
    """Request to rename a user."""
    name: str = Field(..., min_length=1, max_length=100)
    version: Optional[int] = Field(
        None,
        ge=0,
        description="Version the client last read; rejected with 409 if stale",
    )

    class Config:
        extra = "ignore"


# ============================================================================
# Response Models
# ============================================================================

class UserResponse(BaseModel):
    """A user. ``version`` is only present on command responses."""
    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    version: Optional[int] = None

    @classmethod
    def from_model(cls, user: Union[User, UserReadModel], tz: tzinfo) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=to_timezone(user.created_at, tz),
            updated_at=to_timezone(user.updated_at, tz),
            version=getattr(user, "version", None),
        )


class UserPage(BaseModel):
    """Paginated list of users."""
    items: list[UserResponse]
    total: int
    page: int
    size: int
    pages: int

    @classmethod
    def from_page(cls, page: Page[UserReadModel], tz: tzinfo) -> "UserPage":
        return cls(
            items=[UserResponse.from_model(u, tz) for u in page.items],
            total=page.total,
            page=page.page,
            size=page.size,
            pages=page.pages,
        )


class UserCount(BaseModel):
    count: int


class PrincipalResponse(BaseModel):
    """The authenticated caller."""
    subject: str
    authorities: list[str]
