"""
Authentication dependencies.

``JwtAuthMiddleware`` has already rejected unauthenticated requests by the
time a route runs; these dependencies expose the caller and enforce roles.

Usage:
    @router.get("/me")
    async def me(principal: Principal = Depends(get_current_principal)):
        ...
"""
import logging

from fastapi import Depends, HTTPException, Request, status

from msdata.auth.jwt import Principal

logger = logging.getLogger(__name__)


class AuthenticationError(HTTPException):
    """Authentication failed."""
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(HTTPException):
    """Authenticated, but missing a required role."""
    def __init__(self, detail: str = "Insufficient role"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def get_current_principal(request: Request) -> Principal:
    """FastAPI dependency returning the authenticated caller."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise AuthenticationError()
    return principal


def require_write_access(
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Write routes require one of ``settings.write_roles`` when any are
    configured; otherwise every authenticated caller may write.
    """
    settings = request.app.state.settings
    if not settings.write_roles:
        return principal

    prefix = settings.jwt_authority_prefix
    required = [r if r.startswith(prefix) else f"{prefix}{r}" for r in settings.write_roles]
    if not principal.has_any_authority(*required):
        logger.warning(f"Denied write to {request.url.path} for subject {principal.subject!r}")
        raise AuthorizationError(f"One of {sorted(required)} is required")
    return principal
