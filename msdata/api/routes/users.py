"""
Users API Routes.

Thin HTTP layer over ``UserService``. Business-rule failures are raised as
service errors and mapped to status codes by the app's exception handlers.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from msdata.api.deps import ResponseFormat, get_response_format, get_user_service
from msdata.api.schemas.users import UserCount, UserCreate, UserPage, UserResponse, UserUpdate
from msdata.auth.jwt import Principal
from msdata.auth.middleware import require_write_access
from msdata.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


# ============================================================================
# Commands
# ============================================================================

@router.post(
    "",
    response_model=UserResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    data: UserCreate,
    principal: Principal = Depends(require_write_access),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> UserResponse:
    """Create a user. 409 if the email is already registered."""
    logger.info(f"create_user requested by {principal.subject!r}")
    user = await service.create_user(data.name, data.email)
    return UserResponse.from_model(user, fmt.timezone)


@router.patch("/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
async def update_user(
    user_id: int,
    data: UserUpdate,
    principal: Principal = Depends(require_write_access),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> UserResponse:
    """
    Rename a user.

    Send the ``version`` from the last response to detect lost updates;
    a stale version returns 409 and the client should reload and retry.
    """
    user = await service.update_user_name(user_id, data.name, expected_version=data.version)
    return UserResponse.from_model(user, fmt.timezone)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    principal: Principal = Depends(require_write_access),
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Queries
# ============================================================================

@router.get("", response_model=UserPage, response_model_exclude_none=True)
async def list_users(
    request: Request,
    page: int = Query(1, description="1-based page number"),
    size: Optional[int] = Query(None, description="Items per page (default from settings)"),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> UserPage:
    if size is None:
        size = request.app.state.settings.default_page_size
    result = await service.list_users(page, size)
    return UserPage.from_page(result, fmt.timezone)


@router.get("/recent", response_model=list[UserResponse], response_model_exclude_none=True)
async def get_recent_users(
    limit: int = Query(10, description="Maximum number of users"),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> list[UserResponse]:
    """Newest users first."""
    users = await service.get_recent_users(limit)
    return [UserResponse.from_model(u, fmt.timezone) for u in users]


@router.get("/count", response_model=UserCount)
async def count_users(service: UserService = Depends(get_user_service)) -> UserCount:
    return UserCount(count=await service.count_users())


@router.get("/search", response_model=list[UserResponse], response_model_exclude_none=True)
async def search_users(
    name: str = Query(..., description="Text the name must contain; empty matches all"),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> list[UserResponse]:
    users = await service.search_users_by_name(name)
    return [UserResponse.from_model(u, fmt.timezone) for u in users]


@router.get("/by-email", response_model=UserResponse, response_model_exclude_none=True)
async def get_user_by_email(
    email: str = Query(..., min_length=1),
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> UserResponse:
    user = await service.find_user_by_email(email)
    if user is None:
        raise HTTPException(status_code=404, detail=f"No user with email {email}")
    return UserResponse.from_model(user, fmt.timezone)


@router.get("/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
async def get_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
    fmt: ResponseFormat = Depends(get_response_format),
) -> UserResponse:
    user = await service.find_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User not found: {user_id}")
    return UserResponse.from_model(user, fmt.timezone)
