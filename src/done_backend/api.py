"""API Gateway request parsing and response helpers for the Lambda handlers.

Every handler shares one pipeline: log the request, answer CORS preflight,
check the X-User-Id header and table configuration, run the async operation
against a fresh Table, and turn any exception into a JSON error response.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .config import Config
from .exceptions import (
    ConfigurationError,
    DoneError,
    EntityNotFoundError,
    MalformedKeyError,
    ValidationError,
)
from .keys import reserved_tag
from .logger import get_logger
from .repositories import Table

logger = get_logger(__name__)

ALLOWED_HEADERS = "Content-Type,Authorization,X-User-Id"


@dataclass
class Result:
    """Successful operation outcome: a message and optional payload."""

    message: str
    data: Any = None


@dataclass
class Request:
    """An API Gateway proxy event with the caller's user id resolved."""

    event: dict[str, Any]
    user_id: str
    config: Config

    def query(self, name: str, missing_message: str | None = None) -> str:
        """
        Get a required query string parameter.

        Raises:
            ValidationError: If the parameter is absent, empty, or holds a key tag
        """
        params = self.event.get("queryStringParameters") or {}
        value = params.get(name)
        if not value:
            raise ValidationError(
                missing_message or f"{name} is missing in the request query string parameters",
                field=name,
            )
        return check_client_id(str(value), name)

    def body(self) -> dict[str, Any]:
        """
        Parse the JSON request body.

        Raises:
            ValidationError: If the body is missing or is not a JSON object
        """
        return parse_body(self.event)


Operation = Callable[[Request, Table], Awaitable[Result]]


# ---------------------------------------------------------------------------
# Event parsing
# ---------------------------------------------------------------------------


def get_header(event: dict[str, Any], name: str) -> str | None:
    """Case-insensitive header lookup."""
    headers: dict[str, Any] = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value) if value is not None else None
    return None


def require_user_id(event: dict[str, Any]) -> str:
    """
    Get the caller's user id from the X-User-Id header.

    Raises:
        ValidationError: If the header is missing, empty, or holds a key tag
    """
    user_id = get_header(event, "X-User-Id")
    if not user_id:
        raise ValidationError("User ID is missing in the request headers", field="X-User-Id")
    return check_client_id(user_id, "X-User-Id")


def check_client_id(value: str, field: str) -> str:
    """Reject a caller-supplied id that would corrupt the composite key."""
    tag = reserved_tag(value)
    if tag is not None:
        raise ValidationError(f"{field} must not contain {tag!r}", field=field)
    return value


def parse_body(event: dict[str, Any]) -> dict[str, Any]:
    """Decode the event's JSON body into a dict."""
    raw = event.get("body")
    if raw is None or raw == "":
        raise ValidationError("Request body is missing")
    if isinstance(raw, dict):
        return raw
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def cors_headers(config: Config, methods: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": config.allowed_origin,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": methods,
    }


def json_response(
    status_code: int,
    message: str,
    *,
    config: Config,
    methods: str,
    data: Any = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Create an API Gateway response with the ``{message, data?, error?}`` body."""
    body: dict[str, Any] = {"message": message}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    return {
        "statusCode": status_code,
        "headers": cors_headers(config, methods),
        "body": json.dumps(body, default=str),
    }


def error_response(
    exc: Exception, failure_message: str, *, config: Config, methods: str
) -> dict[str, Any]:
    """Map an exception to its status code and error body."""
    if isinstance(exc, ValidationError):
        return json_response(400, str(exc), config=config, methods=methods)
    if isinstance(exc, EntityNotFoundError):
        return json_response(404, str(exc), config=config, methods=methods)
    if isinstance(exc, ConfigurationError):
        return json_response(500, str(exc), config=config, methods=methods)
    return json_response(500, failure_message, config=config, methods=methods, error=str(exc))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def _run(operation: Operation, request: Request) -> Result:
    async with Table.from_config(request.config) as table:
        return await operation(request, table)


def run_operation(
    event: dict[str, Any],
    operation: Operation,
    *,
    methods: str,
    failure_message: str,
    config: Config | None = None,
) -> dict[str, Any]:
    """
    Run one handler operation and render its result.

    Args:
        event: API Gateway proxy event
        operation: Coroutine function taking the request and an open Table
        methods: Value for Access-Control-Allow-Methods
        failure_message: Response message when the operation fails with a 500
        config: Overrides the environment configuration
    """
    method = event.get("httpMethod", "")
    try:
        config = config or Config.from_environment()
    except ConfigurationError as e:
        logger.error(failure_message, error_type=type(e).__name__, error=str(e))
        return error_response(e, failure_message, config=Config(), methods=methods)

    logger.info(f"Processing {method} request for {event.get('path', '')}")

    if method == "OPTIONS":
        return json_response(200, "OK", config=config, methods=methods)

    try:
        request = Request(event=event, user_id=require_user_id(event), config=config)
        config.require_table()
        result = asyncio.run(_run(operation, request))
    except (ValidationError, EntityNotFoundError) as e:
        logger.warning("Request rejected", error_type=type(e).__name__, error=str(e))
        return error_response(e, failure_message, config=config, methods=methods)
    except MalformedKeyError as e:
        logger.error("Malformed key in table", key=e.key, reason=e.reason, exc_info=True)
        return error_response(e, failure_message, config=config, methods=methods)
    except DoneError as e:
        logger.error(failure_message, error_type=type(e).__name__, error=str(e), exc_info=True)
        return error_response(e, failure_message, config=config, methods=methods)
    except Exception as e:
        logger.error(failure_message, exc_info=True)
        return error_response(e, failure_message, config=config, methods=methods)

    return json_response(200, result.message, config=config, methods=methods, data=result.data)
