"""Bearer-token verification against a remote JWK set."""

from dataclasses import dataclass, field
from typing import Any

import jwt

from ..config import Config
from ..exceptions import InvalidSignatureError, KeyNotFoundError, TokenExpiredError
from ..logger import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class VerifiedToken:
    """A token whose signature and time claims checked out."""

    subject: str
    claims: dict[str, Any] = field(default_factory=dict)


def extract_bearer_token(header: str | None) -> str | None:
    """
    Strip the ``Bearer`` scheme from an Authorization header value.

    Returns None if the header is missing, uses another scheme, or carries
    no token.
    """
    if not header:
        return None
    if header[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
        return None
    token = header[len(BEARER_PREFIX) :].strip()
    return token or None


class TokenVerifier:
    """
    Verifies signed JWTs with keys from a JWK set URL.

    The JWK set is fetched once and cached for ``jwks_cache_seconds``. A
    token signed with a kid that is not in the cached set forces one
    refetch, which picks up rotated keys without waiting for expiry.
    Keep one verifier per process so the cache survives between requests.
    """

    def __init__(
        self,
        jwks_url: str,
        audience: str | None = None,
        issuer: str | None = None,
        algorithms: tuple[str, ...] = ("RS256",),
        leeway: int = 0,
        jwks_cache_seconds: int = 300,
        jwk_client: jwt.PyJWKClient | None = None,
    ) -> None:
        self.jwks_url = jwks_url
        self.audience = audience
        self.issuer = issuer
        self.algorithms = list(algorithms)
        self.leeway = leeway
        self.jwk_client = jwk_client or jwt.PyJWKClient(
            jwks_url, cache_jwk_set=True, lifespan=jwks_cache_seconds
        )

    @classmethod
    def from_config(cls, config: Config) -> "TokenVerifier":
        return cls(
            config.require_jwks_url(),
            audience=config.jwt_audience,
            issuer=config.jwt_issuer,
            jwks_cache_seconds=config.jwks_cache_seconds,
        )

    def verify(self, raw_token: str) -> VerifiedToken:
        """
        Verify a compact JWT and return its subject and claims.

        Raises:
            InvalidSignatureError: Token is garbled, forged, or fails a claim check
            TokenExpiredError: Token's exp is in the past
            KeyNotFoundError: No key in the JWK set matches the token's kid,
                or the JWK set could not be fetched
        """
        try:
            header = jwt.get_unverified_header(raw_token)
        except jwt.PyJWTError as e:
            raise InvalidSignatureError(f"Malformed token: {e}") from e

        kid = header.get("kid")
        if not kid:
            raise InvalidSignatureError("Token header has no kid")

        try:
            signing_key = self.jwk_client.get_signing_key(kid)
        except jwt.PyJWKClientConnectionError as e:
            logger.error("JWK set fetch failed", jwks_url=self.jwks_url, error=str(e))
            raise KeyNotFoundError(kid, f"JWK set unavailable: {e}") from e
        except jwt.PyJWKClientError as e:
            raise KeyNotFoundError(kid) from e

        try:
            claims: dict[str, Any] = jwt.decode(
                raw_token,
                key=signing_key.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={
                    "require": ["exp", "sub"],
                    "verify_aud": self.audience is not None,
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise InvalidSignatureError(f"Token rejected: {e}") from e

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidSignatureError("Token has no subject")
        return VerifiedToken(subject=subject, claims=claims)
