"""
Shared route dependencies.
"""
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from fastapi import HTTPException, Query, Request, Response

from msdata.services.user_service import UserService
from msdata.utils.time_utils import resolve_timezone


@dataclass(frozen=True)
class ResponseFormat:
    """How timestamps and language are rendered for one response."""
    timezone: tzinfo
    locale: str


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_response_format(
    request: Request,
    response: Response,
    tz: Optional[str] = Query(None, description="IANA timezone for timestamps, e.g. Europe/Madrid"),
) -> ResponseFormat:
    """Caller-chosen timezone, falling back to the configured default."""
    settings = request.app.state.settings
    try:
        zone = resolve_timezone(tz or settings.default_timezone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    response.headers["Content-Language"] = settings.default_locale
    return ResponseFormat(timezone=zone, locale=settings.default_locale)
