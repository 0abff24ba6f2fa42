"""Exceptions for done-backend."""

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class DoneError(Exception):
    """
    Base exception for all done-backend errors.

    Every exception raised by the data-access and authorization layers
    inherits from this class, so handlers can turn any library failure into
    a structured response with a single except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Category Exceptions
# ---------------------------------------------------------------------------


class EntityError(DoneError):
    """
    Base exception for entity-related errors.

    Raised when reading, creating, updating, or deleting settings,
    categories, tasks, or notifications.
    """

    pass


class InfrastructureError(DoneError):
    """
    Base exception for infrastructure-related errors.

    Covers the DynamoDB table and the process configuration.
    """

    pass


class AuthError(DoneError):
    """
    Base exception for bearer-token verification failures.

    An AuthError always results in an access denial, never in a 500.
    """

    pass


# ---------------------------------------------------------------------------
# Request Exceptions
# ---------------------------------------------------------------------------


class ValidationError(DoneError):
    """Raised when a request is missing a header, parameter, or body field."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# ---------------------------------------------------------------------------
# Entity Exceptions
# ---------------------------------------------------------------------------


class EntityNotFoundError(EntityError):
    """Raised when the referenced entity does not exist."""

    def __init__(self, kind: str, user_id: str, *ids: str) -> None:
        self.kind = kind
        self.user_id = user_id
        self.ids = ids
        ref = "/".join(ids) if ids else user_id
        super().__init__(f"{kind} not found: {ref}")


class EntityExistsError(EntityError):
    """Raised when creating an entity whose key is already taken."""

    def __init__(self, kind: str, user_id: str, *ids: str) -> None:
        self.kind = kind
        self.user_id = user_id
        self.ids = ids
        ref = "/".join(ids) if ids else user_id
        super().__init__(f"{kind} already exists: {ref}")


class MalformedKeyError(EntityError):
    """
    Raised when a composite key cannot be encoded or decoded.

    Indicates corrupted data or a codec bug; handlers treat it as fatal
    for the request.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Malformed key {key!r}: {reason}")


# ---------------------------------------------------------------------------
# Infrastructure Exceptions
# ---------------------------------------------------------------------------


class StoreError(InfrastructureError):
    """
    Raised when a DynamoDB call fails.

    Attributes:
        operation: The DynamoDB API operation that failed
        code: The AWS error code, when one was returned
        cause: The underlying botocore exception
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        code: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.operation = operation
        self.code = code
        self.cause = cause
        detail = f"{code}: {message}" if code else message
        super().__init__(f"{operation} failed: {detail}")


class ConfigurationError(InfrastructureError):
    """Raised when a required configuration value is missing."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"{name} not set")


# ---------------------------------------------------------------------------
# Auth Exceptions
# ---------------------------------------------------------------------------


class InvalidSignatureError(AuthError):
    """Raised when a token is garbled, forged, or fails claim checks."""

    pass


class TokenExpiredError(AuthError):  # noqa: N818
    """Raised when a token's exp claim is in the past."""

    pass


class KeyNotFoundError(AuthError):
    """
    Raised when no key in the JWK set matches the token's kid.

    Also raised when the JWK set endpoint cannot be reached, since the
    signing key is unavailable either way.
    """

    def __init__(self, kid: str | None, message: str | None = None) -> None:
        self.kid = kid
        super().__init__(message or f"No signing key found for kid: {kid}")
