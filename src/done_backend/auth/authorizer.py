"""API Gateway REQUEST authorizer entrypoint."""

from typing import Any

from ..api import get_header
from ..config import Config
from ..exceptions import AuthError, ConfigurationError
from ..logger import get_logger
from .policy import PolicyDecision, api_resource_arn, decide, deny_all
from .verifier import TokenVerifier, extract_bearer_token

logger = get_logger(__name__)

# One verifier per warm container, so the JWK set cache outlives a request
_verifier: TokenVerifier | None = None


def get_verifier(config: Config) -> TokenVerifier:
    """Get or create the process-wide token verifier."""
    global _verifier
    if _verifier is None:
        _verifier = TokenVerifier.from_config(config)
    return _verifier


def reset_verifier() -> None:
    """Drop the cached verifier and its JWK set."""
    global _verifier
    _verifier = None


def authorize(
    event: dict[str, Any], verifier: TokenVerifier, config: Config
) -> PolicyDecision:
    """Decide whether the request's bearer token may act as its X-User-Id."""
    user_id = get_header(event, "X-User-Id")
    token = extract_bearer_token(get_header(event, "Authorization"))
    resource = api_resource_arn(config, event.get("methodArn"))

    if not user_id:
        return deny_all("missing user id")
    if token is None:
        return deny_all("missing bearer token")

    subject: str | None
    try:
        subject = verifier.verify(token).subject
    except AuthError as e:
        logger.warning(
            "Token verification failed",
            user_id=user_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        subject = None

    return decide(user_id, subject, resource)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda entry point for the request authorizer.

    Always returns a policy. Verification failures and configuration
    problems produce a Deny, never an error response.
    """
    try:
        config = Config.from_environment()
        verifier = get_verifier(config)
    except ConfigurationError as e:
        logger.error("Authorizer misconfigured", error=str(e))
        return deny_all("authorizer misconfigured").to_authorizer_response()

    try:
        decision = authorize(event, verifier, config)
    except Exception:
        logger.error("Authorization failed", exc_info=True)
        decision = deny_all("authorizer error")

    logger.info(
        "Authorization decision",
        effect=decision.effect.value,
        resource=decision.resource,
        reason=decision.reason,
    )
    return decision.to_authorizer_response()
