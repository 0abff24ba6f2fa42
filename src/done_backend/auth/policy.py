"""Access decisions for the request authorizer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..config import Config

# Principal reported to API Gateway for every decision
PRINCIPAL_ID = "user"


class Effect(Enum):
    ALLOW = "Allow"
    DENY = "Deny"


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of an authorization check, with the resource it covers."""

    effect: Effect
    resource: str
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.effect is Effect.ALLOW

    def to_authorizer_response(self) -> dict[str, Any]:
        """Render as an API Gateway Lambda authorizer IAM policy."""
        return {
            "principalId": PRINCIPAL_ID,
            "policyDocument": {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Action": "execute-api:Invoke",
                        "Effect": self.effect.value,
                        "Resource": self.resource,
                    }
                ],
            },
        }


def deny_all(reason: str) -> PolicyDecision:
    """Deny every resource of the API."""
    return PolicyDecision(Effect.DENY, "*", reason)


def decide(
    claimed_user_id: str | None, token_subject: str | None, resource: str
) -> PolicyDecision:
    """
    Allow only a verified token whose subject is the claimed user.

    ``token_subject`` is None when the token was missing or failed
    verification.
    """
    if not claimed_user_id:
        return deny_all("missing user id")
    if token_subject is None:
        return deny_all("token not verified")
    if token_subject != claimed_user_id:
        return deny_all("subject does not match user id")
    return PolicyDecision(Effect.ALLOW, resource)


def api_resource_arn(config: Config, method_arn: str | None = None) -> str:
    """
    Resource an Allow covers: every method of the configured API.

    Falls back to the invoked method's ARN when the account or API id is
    not configured.
    """
    return config.api_resource_arn or method_arn or "*"
