"""
JWT bearer token validation.

Tokens are issued elsewhere (e.g. Dex); this module only verifies them and
turns the configured claim into ``ROLE_``-prefixed authorities.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

import jwt
from jwt import PyJWKClient

from msdata.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """An authenticated caller."""

    subject: str
    authorities: FrozenSet[str] = frozenset()
    claims: Dict[str, Any] = field(default_factory=dict, compare=False)

    def has_any_authority(self, *authorities: str) -> bool:
        return any(a in self.authorities for a in authorities)


class JwtVerifier:
    """
    Verifies bearer tokens against a shared secret, a PEM public key or a
    JWKS endpoint (checked in that order of preference: JWKS, public key,
    secret).
    """

    def __init__(
        self,
        *,
        secret: Optional[str] = None,
        public_key: Optional[str] = None,
        jwks_url: Optional[str] = None,
        algorithms: Optional[List[str]] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        leeway: int = 0,
        authorities_claim: str = "groups",
        authority_prefix: str = "ROLE_",
    ):
        if not (secret or public_key or jwks_url):
            raise ValueError("A JWT secret, public key or JWKS URL must be configured")
        self.secret = secret
        self.public_key = public_key
        self.algorithms = algorithms or ["RS256"]
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self.authorities_claim = authorities_claim
        self.authority_prefix = authority_prefix
        self._jwks_client = PyJWKClient(jwks_url) if jwks_url else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtVerifier":
        return cls(
            secret=settings.jwt_secret,
            public_key=settings.jwt_public_key,
            jwks_url=settings.jwt_jwks_url,
            algorithms=settings.jwt_algorithms,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=settings.jwt_leeway_seconds,
            authorities_claim=settings.jwt_authorities_claim,
            authority_prefix=settings.jwt_authority_prefix,
        )

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is not None:
            # Blocking HTTP on a cache miss; callers run this in a thread
            return self._jwks_client.get_signing_key_from_jwt(token).key
        return self.public_key or self.secret

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and registered claims, return the payload.

        Raises:
            jwt.PyJWTError: Any validation failure.
        """
        options: Dict[str, Any] = {"require": ["exp"]}
        if self.audience is None:
            options["verify_aud"] = False
        return jwt.decode(
            token,
            self._signing_key(token),
            algorithms=self.algorithms,
            audience=self.audience,
            issuer=self.issuer,
            leeway=self.leeway,
            options=options,
        )

    def extract_authorities(self, claims: Dict[str, Any]) -> FrozenSet[str]:
        """Map the authorities claim to prefixed authority strings."""
        raw = claims.get(self.authorities_claim)
        if raw is None:
            return frozenset()
        if isinstance(raw, str):
            values = raw.split()
        elif isinstance(raw, (list, tuple, set)):
            values = [str(v) for v in raw]
        else:
            logger.warning(f"Ignoring non-list '{self.authorities_claim}' claim of type {type(raw).__name__}")
            return frozenset()
        return frozenset(f"{self.authority_prefix}{v}" for v in values if v)

    def authenticate(self, token: str) -> Principal:
        claims = self.decode(token)
        return Principal(
            subject=str(claims.get("sub", "")),
            authorities=self.extract_authorities(claims),
            claims=claims,
        )
