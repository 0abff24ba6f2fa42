"""Async DynamoDB table access shared by the entity repositories."""

import time
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from typing import Any

import aioboto3  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError
from ulid import ULID

from .. import schema
from ..config import Config
from ..exceptions import EntityExistsError, EntityNotFoundError, StoreError
from ..keys import EntityKey


class ConditionCheckFailed(StoreError):  # noqa: N818
    """A conditional write found the item in an unexpected state."""

    pass


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate botocore failures into StoreError."""
    try:
        yield
    except ClientError as e:
        error = e.response.get("Error", {})
        code = error.get("Code")
        message = error.get("Message", str(e))
        if code == "ConditionalCheckFailedException":
            raise ConditionCheckFailed(operation, message, code=code, cause=e) from e
        raise StoreError(operation, message, code=code, cause=e) from e
    except BotoCoreError as e:
        raise StoreError(operation, str(e), cause=e) from e


class MonotonicClock:
    """
    Epoch-millisecond clock that never repeats a value.

    Two writes in the same millisecond still get strictly increasing
    timestamps. Tables share one clock per process unless given their own.
    """

    def __init__(self) -> None:
        self._last_ms = 0

    def now_ms(self) -> int:
        now = int(time.time() * 1000)
        if now <= self._last_ms:
            now = self._last_ms + 1
        self._last_ms = now
        return now

    def observe(self, ms: int) -> None:
        """Never issue a value at or below ``ms`` from now on."""
        self._last_ms = max(self._last_ms, ms)


# Shared by every Table in the process
default_clock = MonotonicClock()


class Table:
    """
    Async DynamoDB client wrapper for the single to-do table.

    Owns the aioboto3 session and client, the write clock, and the
    low-level item operations the entity repositories are built on.
    """

    def __init__(
        self,
        table_name: str = schema.DEFAULT_TABLE_NAME,
        region: str | None = None,
        endpoint_url: str | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        self.table_name = table_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.clock = clock or default_clock
        self._session: aioboto3.Session | None = None
        self._client: Any = None

    @classmethod
    def from_config(cls, config: Config) -> "Table":
        """Create a Table for the configured table name and endpoint."""
        return cls(
            table_name=config.require_table(),
            region=config.region,
            endpoint_url=config.endpoint_url,
        )

    async def _get_client(self) -> Any:
        """Get or create the DynamoDB client."""
        if self._client is None:
            self._session = aioboto3.Session()
            self._client = await self._session.client(
                "dynamodb",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            ).__aenter__()
        return self._client

    async def close(self) -> None:
        """Close the DynamoDB client."""
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
            self._client = None
            self._session = None

    async def __aenter__(self) -> "Table":
        await self._get_client()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def now_ms(self) -> int:
        """Current write timestamp in epoch milliseconds."""
        return self.clock.now_ms()

    def new_id(self) -> str:
        """
        Generate a globally unique, time-sortable entity id.

        The ULID timestamp comes from the write clock, so ids issued by one
        process sort in creation order even within a millisecond.
        """
        return str(ULID.from_timestamp(self.clock.now_ms()))

    # -------------------------------------------------------------------------
    # Table operations
    # -------------------------------------------------------------------------

    async def create_table(self) -> None:
        """Create the DynamoDB table if it doesn't exist."""
        client = await self._get_client()
        definition = schema.get_table_definition(self.table_name)

        try:
            await client.create_table(**definition)
            # Wait for table to be active
            waiter = client.get_waiter("table_exists")
            await waiter.wait(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise StoreError("CreateTable", str(e), cause=e) from e

    async def delete_table(self) -> None:
        """Delete the DynamoDB table."""
        client = await self._get_client()
        try:
            await client.delete_table(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise StoreError("DeleteTable", str(e), cause=e) from e

    # -------------------------------------------------------------------------
    # Item operations
    # -------------------------------------------------------------------------

    async def get_item(self, key: EntityKey) -> dict[str, Any] | None:
        """Fetch one item by key, or None if absent."""
        client = await self._get_client()
        with store_errors("GetItem"):
            response = await client.get_item(TableName=self.table_name, Key=key.to_item_key())
        item: dict[str, Any] | None = response.get("Item")
        return item or None

    async def put_new_item(self, key: EntityKey, attributes: dict[str, Any]) -> None:
        """
        Write an item that must not already exist.

        Raises:
            EntityExistsError: If an item with the same key is present
        """
        client = await self._get_client()
        item = {**key.to_item_key(), **serialize_map(attributes)}
        try:
            with store_errors("PutItem"):
                await client.put_item(
                    TableName=self.table_name,
                    Item=item,
                    ConditionExpression="attribute_not_exists(#pk)",
                    ExpressionAttributeNames={"#pk": schema.PK},
                )
        except ConditionCheckFailed as e:
            raise EntityExistsError(key.kind.value, key.user_id, *key.ids) from e

    async def update_existing_item(
        self,
        key: EntityKey,
        changes: dict[str | tuple[str, ...], Any],
        updated_at: int,
    ) -> dict[str, Any]:
        """
        Apply a sparse SET update to an item that must already exist.

        ``changes`` maps attribute names, or attribute paths as tuples for
        nested map entries, to new values. updatedAt is always rewritten and
        always ends up greater than the stored value: when ``updated_at`` is
        not ahead of it (a lagging clock in another process, or two writers in
        one millisecond) the update is retried just past the stored value.
        Returns the item's attributes after the update.

        Raises:
            EntityNotFoundError: If the item does not exist; nothing is written
            StoreError: If concurrent writers keep winning the updatedAt race
        """
        client = await self._get_client()

        names: dict[str, str] = {"#pk": schema.PK, "#updatedAt": schema.UPDATED_AT}
        values: dict[str, Any] = {}
        set_parts = ["#updatedAt = :updatedAt"]

        for i, (path, value) in enumerate(changes.items()):
            segments = (path,) if isinstance(path, str) else path
            placeholders = []
            for j, segment in enumerate(segments):
                name = f"#a{i}_{j}"
                names[name] = segment
                placeholders.append(name)
            values[f":v{i}"] = serialize_value(value)
            set_parts.append(f"{'.'.join(placeholders)} = :v{i}")

        attempt = 0
        while True:
            attempt += 1
            values[":updatedAt"] = {"N": str(updated_at)}
            try:
                with store_errors("UpdateItem"):
                    response = await client.update_item(
                        TableName=self.table_name,
                        Key=key.to_item_key(),
                        UpdateExpression="SET " + ", ".join(set_parts),
                        ConditionExpression=(
                            "attribute_exists(#pk) AND "
                            "(attribute_not_exists(#updatedAt) OR #updatedAt < :updatedAt)"
                        ),
                        ExpressionAttributeNames=names,
                        ExpressionAttributeValues=values,
                        ReturnValues="ALL_NEW",
                    )
            except ConditionCheckFailed as e:
                current = await self.get_item(key)
                if current is None:
                    raise EntityNotFoundError(key.kind.value, key.user_id, *key.ids) from e
                if attempt >= schema.UPDATE_ATTEMPTS:
                    raise
                stored = deserialize_value(current.get(schema.UPDATED_AT, {"N": "0"}))
                updated_at = max(updated_at, int(stored) + 1)
                self.clock.observe(updated_at)
                continue

            attributes: dict[str, Any] = response.get("Attributes", {})
            return attributes

    async def delete_existing_item(self, key: EntityKey) -> None:
        """
        Delete an item that must exist.

        Raises:
            EntityNotFoundError: If the item does not exist
        """
        client = await self._get_client()
        try:
            with store_errors("DeleteItem"):
                await client.delete_item(
                    TableName=self.table_name,
                    Key=key.to_item_key(),
                    ConditionExpression="attribute_exists(#pk)",
                    ExpressionAttributeNames={"#pk": schema.PK},
                )
        except ConditionCheckFailed as e:
            raise EntityNotFoundError(key.kind.value, key.user_id, *key.ids) from e

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def query_pages(
        self,
        pk: str,
        sk_prefix: str | None = None,
        page_size: int | None = None,
        keys_only: bool = False,
    ) -> AsyncIterator[tuple[list[dict[str, Any]], dict[str, Any] | None]]:
        """
        Iterate over a partition one query page at a time.

        Yields ``(items, last_evaluated_key)`` tuples; the last page has no
        continuation key. Items come back in sort-key order.
        """
        client = await self._get_client()

        query_args: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": "#pk = :pk",
            "ExpressionAttributeNames": {"#pk": schema.PK},
            "ExpressionAttributeValues": {":pk": {"S": pk}},
        }
        if sk_prefix:
            query_args["KeyConditionExpression"] += " AND begins_with(#sk, :sk_prefix)"
            query_args["ExpressionAttributeNames"]["#sk"] = schema.SK
            query_args["ExpressionAttributeValues"][":sk_prefix"] = {"S": sk_prefix}
        if keys_only:
            query_args["ExpressionAttributeNames"]["#sk"] = schema.SK
            query_args["ProjectionExpression"] = "#pk, #sk"
        if page_size:
            query_args["Limit"] = page_size

        while True:
            with store_errors("Query"):
                response = await client.query(**query_args)
            last_key = response.get("LastEvaluatedKey")
            yield response.get("Items", []), last_key
            if not last_key:
                break
            query_args["ExclusiveStartKey"] = last_key

    async def query_prefix(self, pk: str, sk_prefix: str | None = None) -> list[dict[str, Any]]:
        """Collect every item in a partition whose sort key starts with ``sk_prefix``."""
        items: list[dict[str, Any]] = []
        async for page, _ in self.query_pages(pk, sk_prefix):
            items.extend(page)
        return items

    async def batch_write(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Issue one BatchWriteItem call for up to 25 put/delete requests.

        Returns the requests DynamoDB left unprocessed.
        """
        if len(requests) > schema.BATCH_WRITE_LIMIT:
            raise ValueError(f"BatchWriteItem takes at most {schema.BATCH_WRITE_LIMIT} requests")
        if not requests:
            return []

        client = await self._get_client()
        with store_errors("BatchWriteItem"):
            response = await client.batch_write_item(RequestItems={self.table_name: requests})
        unprocessed: list[dict[str, Any]] = response.get("UnprocessedItems", {}).get(
            self.table_name, []
        )
        return unprocessed


# -----------------------------------------------------------------------------
# Serialization helpers
# -----------------------------------------------------------------------------


def serialize_map(data: dict[str, Any]) -> dict[str, Any]:
    """Serialize a Python dict to DynamoDB map format."""
    return {key: serialize_value(value) for key, value in data.items()}


def serialize_value(value: Any) -> dict[str, Any]:
    """Serialize a single value to DynamoDB format."""
    if value is None:
        return {"NULL": True}
    elif isinstance(value, bool):
        return {"BOOL": value}
    elif isinstance(value, str):
        return {"S": value}
    elif isinstance(value, int | float):
        return {"N": str(value)}
    elif isinstance(value, dict):
        return {"M": serialize_map(value)}
    elif isinstance(value, list):
        return {"L": [serialize_value(v) for v in value]}
    return {"S": str(value)}


def deserialize_map(data: dict[str, Any]) -> dict[str, Any]:
    """Deserialize a DynamoDB map to Python dict."""
    return {key: deserialize_value(value) for key, value in data.items()}


def deserialize_value(value: dict[str, Any]) -> Any:
    """Deserialize a single DynamoDB value."""
    if "S" in value:
        return value["S"]
    elif "N" in value:
        num_str = value["N"]
        return int(num_str) if "." not in num_str else float(num_str)
    elif "BOOL" in value:
        return value["BOOL"]
    elif "M" in value:
        return deserialize_map(value["M"])
    elif "L" in value:
        return [deserialize_value(v) for v in value["L"]]
    elif "NULL" in value:
        return None
    return None
