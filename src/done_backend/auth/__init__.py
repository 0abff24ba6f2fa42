"""Bearer-token verification and the API Gateway authorizer."""

from .policy import Effect, PolicyDecision, api_resource_arn, decide, deny_all
from .verifier import TokenVerifier, VerifiedToken, extract_bearer_token

__all__ = [
    "Effect",
    "PolicyDecision",
    "TokenVerifier",
    "VerifiedToken",
    "api_resource_arn",
    "decide",
    "deny_all",
    "extract_bearer_token",
]
