"""Process configuration for done-backend components."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import ConfigurationError
from .schema import DEFAULT_TABLE_NAME


@dataclass(frozen=True)
class Config:
    """
    Explicit configuration passed to each component at construction.

    Lambda entrypoints build one with ``from_environment()``; tests and the
    CLI construct it directly.
    """

    table_name: str = DEFAULT_TABLE_NAME
    region: str | None = None
    endpoint_url: str | None = None

    # Token verification
    jwks_url: str | None = None
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    jwks_cache_seconds: int = 300

    # Authorizer policy resource
    account_id: str | None = None
    api_id: str | None = None

    # CORS
    frontend_url: str | None = None

    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> Config:
        """
        Create Config from environment variables.

        Raises:
            ConfigurationError: If a numeric variable does not parse
        """
        return cls(
            table_name=os.environ.get("TABLE_NAME", ""),
            region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
            endpoint_url=os.environ.get("AWS_ENDPOINT_URL") or None,
            jwks_url=os.environ.get("JWKS_ENDPOINT") or None,
            jwt_audience=os.environ.get("JWT_AUDIENCE") or None,
            jwt_issuer=os.environ.get("JWT_ISSUER") or None,
            jwks_cache_seconds=_int_env("JWKS_CACHE_SECONDS", 300),
            account_id=os.environ.get("ACCOUNT_ID") or None,
            api_id=os.environ.get("API_ID") or None,
            frontend_url=os.environ.get("FRONTEND_URL") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    def require_table(self) -> str:
        """Return the table name, or raise if it is not configured."""
        if not self.table_name:
            raise ConfigurationError("TABLE_NAME", "Table name not set")
        return self.table_name

    def require_jwks_url(self) -> str:
        """Return the JWK set URL, or raise if it is not configured."""
        if not self.jwks_url:
            raise ConfigurationError("JWKS_ENDPOINT", "JWKS endpoint not set")
        return self.jwks_url

    @property
    def allowed_origin(self) -> str:
        """Value for the Access-Control-Allow-Origin response header."""
        return f"https://{self.frontend_url}" if self.frontend_url else ""

    @property
    def api_resource_arn(self) -> str | None:
        """Wildcard execute-api ARN covering every method of the API."""
        if not (self.region and self.account_id and self.api_id):
            return None
        return f"arn:aws:execute-api:{self.region}:{self.account_id}:{self.api_id}/*"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(name, f"{name} must be an integer, got {raw!r}") from None
