"""Per-request time limit."""
from __future__ import annotations

import asyncio
import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware:
    """
    Cancels request handling after ``timeout_seconds``.

    Cancellation unwinds through the open transaction scope, which rolls
    back, so nothing partial is ever committed. If the response has not
    started yet the caller gets a 503.
    """

    def __init__(self, app: ASGIApp, timeout_seconds: float):
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or self.timeout_seconds <= 0:
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Request {scope.get('method')} {scope.get('path')} exceeded {self.timeout_seconds}s, abandoned"
            )
            if response_started:
                return
            response = JSONResponse(
                {"detail": "Request timed out", "timeout_seconds": self.timeout_seconds},
                status_code=503,
            )
            await response(scope, receive, send)
