"""Paginated, batched removal of a user's items."""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from . import keys, schema
from .exceptions import StoreError
from .logger import get_logger

if TYPE_CHECKING:
    from .repositories.base import Table

logger = get_logger(__name__)

# Resubmissions of UnprocessedItems before a chunk is reported as failed
MAX_UNPROCESSED_ATTEMPTS = 5


@dataclass
class CascadeResult:
    """Totals for one cascade run."""

    items_deleted: int = 0
    pages: int = 0
    batches: int = 0


def chunk(items: list[Any], size: int = schema.BATCH_WRITE_LIMIT) -> list[list[Any]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    return [items[i : i + size] for i in range(0, len(items), size)]


class CascadeDeleter:
    """
    Deletes every item under a user partition, or under a sort-key prefix.

    Each query page is split into chunks of at most 25 delete requests, all
    chunks of the page are written concurrently, and the next page is only
    fetched once the whole page is gone. The run is not atomic: a crash
    leaves the partition partly deleted, and re-running it finishes the job,
    since deleting a missing key is a no-op.
    """

    def __init__(self, table: "Table", page_size: int | None = None) -> None:
        self.table = table
        self.page_size = page_size

    async def delete_partition(self, user_id: str) -> CascadeResult:
        """Delete everything stored for ``user_id``."""
        result = await self._delete(keys.pk_user(user_id), None)
        logger.info(
            "User partition deleted",
            user_id=user_id,
            items_deleted=result.items_deleted,
            pages=result.pages,
            batches=result.batches,
        )
        return result

    async def delete_prefix(self, user_id: str, sk_prefix: str) -> CascadeResult:
        """Delete the items of ``user_id`` whose sort key starts with ``sk_prefix``."""
        if not sk_prefix:
            raise ValueError("sk_prefix must not be empty; use delete_partition")
        return await self._delete(keys.pk_user(user_id), sk_prefix)

    async def _delete(self, pk: str, sk_prefix: str | None) -> CascadeResult:
        result = CascadeResult()

        async for items, last_key in self.table.query_pages(
            pk, sk_prefix, page_size=self.page_size, keys_only=True
        ):
            result.pages += 1
            if not items:
                continue

            delete_requests = [
                {"DeleteRequest": {"Key": {schema.PK: item[schema.PK], schema.SK: item[schema.SK]}}}
                for item in items
            ]
            chunks = chunk(delete_requests)
            await asyncio.gather(*(self._write_chunk(c) for c in chunks))

            result.batches += len(chunks)
            result.items_deleted += len(items)
            logger.debug(
                "Deleted page",
                pk=pk,
                page=result.pages,
                items=len(items),
                batches=len(chunks),
                has_more=bool(last_key),
            )

        return result

    async def _write_chunk(self, requests: list[dict[str, Any]]) -> None:
        """Write one chunk, resubmitting anything DynamoDB leaves unprocessed."""
        pending = requests
        for _ in range(MAX_UNPROCESSED_ATTEMPTS):
            pending = await self.table.batch_write(pending)
            if not pending:
                return
        raise StoreError(
            "BatchWriteItem",
            f"{len(pending)} delete request(s) still unprocessed after "
            f"{MAX_UNPROCESSED_ATTEMPTS} attempts",
        )
