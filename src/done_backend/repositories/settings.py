"""Repository for the per-user settings singleton."""

from typing import Any

from .. import keys, schema
from ..exceptions import EntityExistsError
from ..models import SettingsPatch, SortMode, UserSettings, default_notification_map
from .base import Table, deserialize_map


class SettingsRepository:
    """
    Settings live at ``(USER#<userId>, SETTINGS#)``.

    A missing settings item means the user has never signed in; callers
    create the defaults lazily with ``get_or_create``.
    """

    def __init__(self, table: Table) -> None:
        self.table = table

    async def get(self, user_id: str) -> UserSettings | None:
        """Get a user's settings, or None for a new user."""
        item = await self.table.get_item(keys.SettingsKey(user_id))
        if item is None:
            return None
        return self._from_item(user_id, item)

    async def create_defaults(self, user_id: str) -> UserSettings:
        """
        Write the default settings for a new user.

        Raises:
            EntityExistsError: If the user already has settings
        """
        now = self.table.now_ms()
        settings = UserSettings(user_id=user_id, created_at=now, updated_at=now)
        await self.table.put_new_item(keys.SettingsKey(user_id), self._to_attributes(settings))
        return settings

    async def get_or_create(self, user_id: str) -> tuple[UserSettings, bool]:
        """
        Get a user's settings, creating the defaults on first access.

        Returns:
            Tuple of (settings, created)
        """
        settings = await self.get(user_id)
        if settings is not None:
            return settings, False
        try:
            return await self.create_defaults(user_id), True
        except EntityExistsError:
            # Lost a race with a concurrent first sign-in
            settings = await self.get(user_id)
            if settings is None:
                raise
            return settings, False

    async def update(self, user_id: str, patch: SettingsPatch | dict[str, Any]) -> UserSettings:
        """
        Apply a partial settings update.

        Supplied ``defaultNotifications`` entries are written one map key at
        a time, so the stored map always keeps its five reminder offsets.

        Raises:
            EntityNotFoundError: If the user has no settings yet
        """
        if not isinstance(patch, SettingsPatch):
            patch = SettingsPatch.from_body(patch)

        changes: dict[str | tuple[str, ...], Any] = {}
        for attr, value in patch.changes().items():
            if attr == "defaultNotifications":
                for minutes, enabled in value.items():
                    changes[(attr, minutes)] = enabled
            else:
                changes[attr] = value

        attributes = await self.table.update_existing_item(
            keys.SettingsKey(user_id), changes, self.table.now_ms()
        )
        return self._from_item(user_id, attributes)

    async def list_by_user(self, user_id: str) -> list[UserSettings]:
        """The user's settings as a list of zero or one element."""
        settings = await self.get(user_id)
        return [settings] if settings is not None else []

    async def delete(self, user_id: str) -> None:
        """
        Delete a user's settings.

        Raises:
            EntityNotFoundError: If the user has no settings
        """
        await self.table.delete_existing_item(keys.SettingsKey(user_id))

    def _to_attributes(self, settings: UserSettings) -> dict[str, Any]:
        attributes = settings.to_dict()
        attributes[schema.CREATED_AT] = settings.created_at
        attributes[schema.UPDATED_AT] = settings.updated_at
        return attributes

    def _from_item(self, user_id: str, item: dict[str, Any]) -> UserSettings:
        data = deserialize_map(item)
        notifications = default_notification_map()
        notifications.update(
            {k: bool(v) for k, v in (data.get("defaultNotifications") or {}).items()}
        )
        return UserSettings(
            user_id=user_id,
            twelve_hour=data.get("twelveHour", True),
            enable_notifications=data.get("enableNotifications", True),
            display_email=data.get("displayEmail", False),
            default_notifications=notifications,
            sort_mode=SortMode(data.get("sortMode", SortMode.CATEGORY.value)),
            created_at=int(data.get(schema.CREATED_AT, 0)),
            updated_at=int(data.get(schema.UPDATED_AT, 0)),
        )
