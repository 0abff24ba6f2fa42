"""Repository for user tasks."""

from typing import Any

from .. import keys, schema
from ..cascade import CascadeDeleter
from ..logger import get_logger
from ..models import Task, TaskCreateResult, TaskInput, TaskPatch
from .base import Table, deserialize_map
from .notifications import NotificationRepository

logger = get_logger(__name__)


class TaskRepository:
    """
    Tasks live at ``(USER#<userId>, TASK#<taskId>)``.

    The ``TASK#`` prefix also matches notification items, which sort right
    after their task; task reads skip them by decoding each sort key.
    """

    def __init__(
        self,
        table: Table,
        notifications: NotificationRepository | None = None,
        deleter: CascadeDeleter | None = None,
    ) -> None:
        self.table = table
        self.notifications = notifications or NotificationRepository(table)
        self.deleter = deleter or CascadeDeleter(table)

    async def get(self, user_id: str, task_id: str) -> Task | None:
        """Get a task by id."""
        key = keys.TaskKey(user_id, task_id)
        item = await self.table.get_item(key)
        if item is None:
            return None
        return self._from_item(key, item)

    async def create(self, user_id: str, fields: TaskInput | dict[str, Any]) -> TaskCreateResult:
        """
        Create a task and one notification per selected default reminder.

        The task is written first. Reminder writes are best-effort: the
        result lists an outcome per reminder, and a failed reminder neither
        undoes the task nor the reminders that made it.

        Raises:
            ValidationError: If taskTitle is missing or a field is invalid
        """
        if not isinstance(fields, TaskInput):
            fields = TaskInput.from_body(fields)

        now = self.table.now_ms()
        task = Task(
            user_id=user_id,
            task_id=self.table.new_id(),
            task_title=fields.task_title,
            task_notes=fields.task_notes,
            task_due_date=fields.task_due_date,
            task_completed=fields.task_completed,
            category_id=fields.category_id,
            created_at=now,
            updated_at=now,
        )
        key = keys.TaskKey(user_id, task.task_id)
        await self.table.put_new_item(key, self._to_attributes(task))

        outcomes = await self.notifications.create_many(
            user_id, task.task_id, fields.selected_reminder_minutes, created_at=now
        )
        result = TaskCreateResult(task=task, notifications=outcomes)
        if result.partial:
            logger.warning(
                "Task created with missing notifications",
                user_id=user_id,
                task_id=task.task_id,
                failed=[o.reminder_time_before_due for o in result.failed],
            )
        return result

    async def update(self, user_id: str, task_id: str, patch: TaskPatch | dict[str, Any]) -> Task:
        """
        Apply a partial task update.

        Raises:
            EntityNotFoundError: If the task does not exist
        """
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.from_body(patch)

        key = keys.TaskKey(user_id, task_id)
        changes: dict[str | tuple[str, ...], Any] = dict(patch.changes())
        attributes = await self.table.update_existing_item(key, changes, self.table.now_ms())
        return self._from_item(key, attributes)

    async def list_by_user(self, user_id: str) -> list[Task]:
        """All of a user's tasks in sort-key order, without notifications."""
        items = await self.table.query_prefix(keys.pk_user(user_id), keys.task_prefix())
        tasks = []
        for item in items:
            key = keys.key_from_item(item)
            if isinstance(key, keys.TaskKey):
                tasks.append(self._from_item(key, item))
        return tasks

    async def delete(self, user_id: str, task_id: str) -> int:
        """
        Delete a task and its notifications.

        Returns:
            Number of notifications removed with the task

        Raises:
            EntityNotFoundError: If the task does not exist
        """
        await self.table.delete_existing_item(keys.TaskKey(user_id, task_id))
        result = await self.deleter.delete_prefix(user_id, keys.notification_prefix(task_id))
        return result.items_deleted

    def _to_attributes(self, task: Task) -> dict[str, Any]:
        return {
            "taskTitle": task.task_title,
            "taskNotes": task.task_notes,
            "taskDueDate": task.task_due_date,
            "taskCompleted": task.task_completed,
            "categoryId": task.category_id,
            schema.CREATED_AT: task.created_at,
            schema.UPDATED_AT: task.updated_at,
        }

    def _from_item(self, key: keys.TaskKey, item: dict[str, Any]) -> Task:
        data = deserialize_map(item)
        return Task(
            user_id=key.user_id,
            task_id=key.task_id,
            task_title=data.get("taskTitle", ""),
            task_notes=data.get("taskNotes") or "",
            task_due_date=int(data.get("taskDueDate") or 0),
            task_completed=data.get("taskCompleted", False),
            category_id=data.get("categoryId"),
            created_at=int(data.get(schema.CREATED_AT, 0)),
            updated_at=int(data.get(schema.UPDATED_AT, 0)),
        )
