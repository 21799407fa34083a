"""
API Router - Combines all route modules.
"""
from fastapi import APIRouter, Depends

from msdata.api.routes import users
from msdata.api.schemas.users import PrincipalResponse
from msdata.auth.jwt import Principal
from msdata.auth.middleware import get_current_principal

# Main API router (bearer token required)
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(users.router)


@api_router.get("/me", response_model=PrincipalResponse)
async def whoami(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    """The authenticated caller and the authorities mapped from its token."""
    return PrincipalResponse(subject=principal.subject, authorities=sorted(principal.authorities))
