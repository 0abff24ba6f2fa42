"""Repository for user categories."""

from typing import Any

from .. import keys, schema
from ..models import Category, CategoryInput, CategoryPatch
from .base import Table, deserialize_map


class CategoryRepository:
    """Categories live at ``(USER#<userId>, CATEGORY#<categoryId>)``."""

    def __init__(self, table: Table) -> None:
        self.table = table

    async def get(self, user_id: str, category_id: str) -> Category | None:
        """Get a category by id."""
        key = keys.CategoryKey(user_id, category_id)
        item = await self.table.get_item(key)
        if item is None:
            return None
        return self._from_item(key, item)

    async def create(self, user_id: str, fields: CategoryInput | dict[str, Any]) -> Category:
        """
        Create a category with a fresh id.

        Raises:
            ValidationError: If categoryName is missing or empty
        """
        if not isinstance(fields, CategoryInput):
            fields = CategoryInput.from_body(fields)

        now = self.table.now_ms()
        category = Category(
            user_id=user_id,
            category_id=self.table.new_id(),
            category_name=fields.category_name,
            created_at=now,
            updated_at=now,
        )
        await self.table.put_new_item(
            keys.CategoryKey(user_id, category.category_id),
            {
                "categoryName": category.category_name,
                schema.CREATED_AT: now,
                schema.UPDATED_AT: now,
            },
        )
        return category

    async def update(
        self, user_id: str, category_id: str, patch: CategoryPatch | dict[str, Any]
    ) -> Category:
        """
        Rename a category.

        Raises:
            EntityNotFoundError: If the category does not exist
        """
        if not isinstance(patch, CategoryPatch):
            patch = CategoryPatch.from_body(patch)

        key = keys.CategoryKey(user_id, category_id)
        changes: dict[str | tuple[str, ...], Any] = dict(patch.changes())
        attributes = await self.table.update_existing_item(key, changes, self.table.now_ms())
        return self._from_item(key, attributes)

    async def list_by_user(self, user_id: str) -> list[Category]:
        """All of a user's categories in sort-key order."""
        items = await self.table.query_prefix(keys.pk_user(user_id), keys.category_prefix())
        categories = []
        for item in items:
            key = keys.key_from_item(item)
            if isinstance(key, keys.CategoryKey):
                categories.append(self._from_item(key, item))
        return categories

    async def delete(self, user_id: str, category_id: str) -> None:
        """
        Delete a category.

        Tasks that reference it keep their categoryId and read as
        uncategorized.

        Raises:
            EntityNotFoundError: If the category does not exist
        """
        await self.table.delete_existing_item(keys.CategoryKey(user_id, category_id))

    def _from_item(self, key: keys.CategoryKey, item: dict[str, Any]) -> Category:
        data = deserialize_map(item)
        return Category(
            user_id=key.user_id,
            category_id=key.category_id,
            category_name=data.get("categoryName", ""),
            created_at=int(data.get(schema.CREATED_AT, 0)),
            updated_at=int(data.get(schema.UPDATED_AT, 0)),
        )
