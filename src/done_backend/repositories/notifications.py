"""Repository for task notifications."""

from typing import Any

from .. import keys, schema
from ..exceptions import StoreError
from ..logger import get_logger
from ..models import (
    NotificationInput,
    NotificationOutcome,
    NotificationPatch,
    TaskNotification,
)
from .base import Table, deserialize_map, serialize_map

logger = get_logger(__name__)


class NotificationRepository:
    """
    Notifications live at ``(USER#<userId>, TASK#<taskId>NOTIFICATION#<notificationId>)``.

    They sort directly after their task, so one prefix query returns a task
    together with its reminders.
    """

    def __init__(self, table: Table) -> None:
        self.table = table

    async def get(
        self, user_id: str, task_id: str, notification_id: str
    ) -> TaskNotification | None:
        """Get a notification by its task id and notification id."""
        key = keys.NotificationKey(user_id, task_id, notification_id)
        item = await self.table.get_item(key)
        if item is None:
            return None
        return self._from_item(key, item)

    async def create(
        self,
        user_id: str,
        task_id: str,
        fields: NotificationInput | dict[str, Any],
    ) -> TaskNotification:
        """
        Create a notification for a task.

        Raises:
            ValidationError: If reminderTimeBeforeDue is missing or invalid
        """
        if not isinstance(fields, NotificationInput):
            fields = NotificationInput.from_body(fields)

        notification = self._new(
            user_id,
            task_id,
            fields.reminder_time_before_due,
            fields.notification_enabled,
            self.table.now_ms(),
        )
        key = keys.NotificationKey(user_id, task_id, notification.notification_id)
        await self.table.put_new_item(key, self._to_attributes(notification))
        return notification

    async def create_many(
        self,
        user_id: str,
        task_id: str,
        reminder_minutes: list[int],
        created_at: int | None = None,
    ) -> list[NotificationOutcome]:
        """
        Best-effort creation of one enabled notification per reminder offset.

        All items go out in a single BatchWriteItem. Items DynamoDB leaves
        unprocessed, or every item when the call itself fails, are reported
        as failed outcomes; written items are kept.
        """
        if not reminder_minutes:
            return []

        now = created_at if created_at is not None else self.table.now_ms()
        pending = [self._new(user_id, task_id, minutes, True, now) for minutes in reminder_minutes]
        requests = [
            {
                "PutRequest": {
                    "Item": {
                        **keys.NotificationKey(
                            user_id, task_id, n.notification_id
                        ).to_item_key(),
                        **serialize_map(self._to_attributes(n)),
                    }
                }
            }
            for n in pending
        ]

        try:
            unprocessed = await self.table.batch_write(requests)
        except StoreError as e:
            logger.warning(
                "Notification batch write failed",
                user_id=user_id,
                task_id=task_id,
                error=str(e),
            )
            return [
                NotificationOutcome(
                    reminder_time_before_due=n.reminder_time_before_due, error=str(e)
                )
                for n in pending
            ]

        unprocessed_sks = {r["PutRequest"]["Item"][schema.SK]["S"] for r in unprocessed}
        outcomes = []
        for n in pending:
            sk = keys.NotificationKey(user_id, task_id, n.notification_id).sk
            if sk in unprocessed_sks:
                outcomes.append(
                    NotificationOutcome(
                        reminder_time_before_due=n.reminder_time_before_due,
                        error="Unprocessed by DynamoDB",
                    )
                )
            else:
                outcomes.append(
                    NotificationOutcome(
                        reminder_time_before_due=n.reminder_time_before_due, notification=n
                    )
                )
        if unprocessed_sks:
            logger.warning(
                "Some notifications were not written",
                user_id=user_id,
                task_id=task_id,
                unprocessed=len(unprocessed_sks),
            )
        return outcomes

    async def update(
        self,
        user_id: str,
        task_id: str,
        notification_id: str,
        patch: NotificationPatch | dict[str, Any],
    ) -> TaskNotification:
        """
        Apply a partial notification update.

        Raises:
            EntityNotFoundError: If the notification does not exist
        """
        if not isinstance(patch, NotificationPatch):
            patch = NotificationPatch.from_body(patch)

        key = keys.NotificationKey(user_id, task_id, notification_id)
        changes: dict[str | tuple[str, ...], Any] = dict(patch.changes())
        attributes = await self.table.update_existing_item(key, changes, self.table.now_ms())
        return self._from_item(key, attributes)

    async def list_by_task(self, user_id: str, task_id: str) -> list[TaskNotification]:
        """All notifications of one task in sort-key order."""
        items = await self.table.query_prefix(
            keys.pk_user(user_id), keys.notification_prefix(task_id)
        )
        return self._from_items(items)

    async def list_by_user(self, user_id: str) -> list[TaskNotification]:
        """All of a user's notifications, grouped by task."""
        items = await self.table.query_prefix(keys.pk_user(user_id), keys.task_prefix())
        return self._from_items(items)

    async def delete(self, user_id: str, task_id: str, notification_id: str) -> None:
        """
        Delete a notification.

        Raises:
            EntityNotFoundError: If no notification has this task id and id
        """
        await self.table.delete_existing_item(
            keys.NotificationKey(user_id, task_id, notification_id)
        )

    def _new(
        self, user_id: str, task_id: str, minutes: int, enabled: bool, now: int
    ) -> TaskNotification:
        return TaskNotification(
            user_id=user_id,
            task_id=task_id,
            notification_id=self.table.new_id(),
            reminder_time_before_due=minutes,
            notification_enabled=enabled,
            created_at=now,
            updated_at=now,
        )

    def _to_attributes(self, notification: TaskNotification) -> dict[str, Any]:
        return {
            "notificationEnabled": notification.notification_enabled,
            "reminderTimeBeforeDue": notification.reminder_time_before_due,
            schema.CREATED_AT: notification.created_at,
            schema.UPDATED_AT: notification.updated_at,
        }

    def _from_items(self, items: list[dict[str, Any]]) -> list[TaskNotification]:
        notifications = []
        for item in items:
            key = keys.key_from_item(item)
            if isinstance(key, keys.NotificationKey):
                notifications.append(self._from_item(key, item))
        return notifications

    def _from_item(self, key: keys.NotificationKey, item: dict[str, Any]) -> TaskNotification:
        data = deserialize_map(item)
        return TaskNotification(
            user_id=key.user_id,
            task_id=key.task_id,
            notification_id=key.notification_id,
            reminder_time_before_due=int(data.get("reminderTimeBeforeDue", 0)),
            notification_enabled=data.get("notificationEnabled", True),
            created_at=int(data.get(schema.CREATED_AT, 0)),
            updated_at=int(data.get(schema.UPDATED_AT, 0)),
        )
