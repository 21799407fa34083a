"""Bearer JWT authentication middleware."""
from __future__ import annotations

import logging
from typing import Iterable

import jwt
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from msdata.auth.jwt import JwtVerifier

logger = logging.getLogger(__name__)


class JwtAuthMiddleware:
    """
    Requires a valid ``Authorization: Bearer <jwt>`` on every HTTP request
    except allow-listed paths. The authenticated ``Principal`` is stored in
    ``request.state.principal``; rejected requests never reach a route.
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: JwtVerifier,
        public_paths: Iterable[str] = (),
        public_prefixes: Iterable[str] = (),
    ):
        self.app = app
        self.verifier = verifier
        self.public_paths = frozenset(public_paths)
        self.public_prefixes = tuple(public_prefixes)

    def is_public(self, path: str) -> bool:
        return path in self.public_paths or path.startswith(self.public_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or self.is_public(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        # Allow OPTIONS requests (CORS preflight)
        if scope.get("method") == "OPTIONS":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        auth_header = headers.get(b"authorization")

        if not auth_header:
            await self._reject(scope, receive, send, "Missing bearer token")
            return

        try:
            scheme, token = auth_header.decode("latin-1").split(" ", 1)
        except ValueError:
            await self._reject(scope, receive, send, "Invalid Authorization header format")
            return

        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            await self._reject(scope, receive, send, "Invalid Authorization header format")
            return

        try:
            principal = await run_in_threadpool(self.verifier.authenticate, token)
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected bearer token on {scope.get('path')}: {e}")
            await self._reject(scope, receive, send, "Invalid bearer token", error="invalid_token")
            return

        scope.setdefault("state", {})["principal"] = principal
        await self.app(scope, receive, send)

    async def _reject(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        detail: str,
        error: str | None = None,
    ) -> None:
        challenge = f'Bearer error="{error}"' if error else "Bearer"
        response = JSONResponse(
            {"detail": detail},
            status_code=401,
            headers={"WWW-Authenticate": challenge},
        )
        await response(scope, receive, send)
