"""Lambda entrypoints, one per API operation.

Each entrypoint is a thin wrapper around ``api.run_operation``: the
coroutine below it does the work against an open Table and returns a
``Result`` with the success message and response data.
"""

from typing import Any

from .account import AccountService
from .api import Request, Result, run_operation
from .models import (
    CategoryInput,
    CategoryPatch,
    NotificationInput,
    NotificationPatch,
    SettingsPatch,
    TaskInput,
    TaskPatch,
)
from .repositories import (
    CategoryRepository,
    NotificationRepository,
    SettingsRepository,
    Table,
    TaskRepository,
)

TASK_ID_MISSING = "Task ID is missing in the request query string parameters"
CATEGORY_ID_MISSING = "Category ID is missing in the request query string parameters"
NOTIFICATION_ID_MISSING = "Notification ID is missing in the request query string parameters"


# ---------------------------------------------------------------------------
# userAccount
# ---------------------------------------------------------------------------


async def _initialize_user(request: Request, table: Table) -> Result:
    data = await AccountService(table).initialize(request.user_id)
    if data.created:
        return Result("User and settings created successfully", data.to_dict())
    return Result("User data retrieved successfully", data.to_dict())


def initialize_user(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """POST /userAccount - Load a user's data, creating default settings on first sign-in."""
    return run_operation(
        event,
        _initialize_user,
        methods="OPTIONS,POST",
        failure_message="Error creating user and settings",
    )


async def _delete_account(request: Request, table: Table) -> Result:
    result = await AccountService(table).delete_account(request.user_id)
    return Result("User items deleted successfully", {"itemsDeleted": result.items_deleted})


def delete_account(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """DELETE /userAccount - Delete every item stored for the user."""
    return run_operation(
        event,
        _delete_account,
        methods="OPTIONS,DELETE",
        failure_message="Error deleting user items",
    )


# ---------------------------------------------------------------------------
# userSettings
# ---------------------------------------------------------------------------


async def _update_user_settings(request: Request, table: Table) -> Result:
    patch = SettingsPatch.from_body(request.body())
    settings = await SettingsRepository(table).update(request.user_id, patch)
    return Result("User updated successfully", settings.to_dict())


def update_user_settings(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """PATCH /userSettings - Partially update the user's settings."""
    return run_operation(
        event,
        _update_user_settings,
        methods="OPTIONS,PATCH",
        failure_message="Error updating user",
    )


# ---------------------------------------------------------------------------
# userCategory
# ---------------------------------------------------------------------------


async def _create_user_category(request: Request, table: Table) -> Result:
    fields = CategoryInput.from_body(request.body())
    category = await CategoryRepository(table).create(request.user_id, fields)
    return Result("Category created successfully", category.to_dict())


def create_user_category(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """POST /userCategory - Create a category."""
    return run_operation(
        event,
        _create_user_category,
        methods="OPTIONS,POST",
        failure_message="Error creating category",
    )


async def _update_user_category(request: Request, table: Table) -> Result:
    category_id = request.query("categoryId", CATEGORY_ID_MISSING)
    patch = CategoryPatch.from_body(request.body())
    category = await CategoryRepository(table).update(request.user_id, category_id, patch)
    return Result("Category updated successfully", category.to_dict())


def update_user_category(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """PATCH /userCategory?categoryId= - Rename a category."""
    return run_operation(
        event,
        _update_user_category,
        methods="OPTIONS,PATCH",
        failure_message="Error updating category",
    )


async def _delete_user_category(request: Request, table: Table) -> Result:
    category_id = request.query("categoryId", CATEGORY_ID_MISSING)
    await CategoryRepository(table).delete(request.user_id, category_id)
    return Result("Category deleted successfully")


def delete_user_category(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """DELETE /userCategory?categoryId= - Delete a category; its tasks become uncategorized."""
    return run_operation(
        event,
        _delete_user_category,
        methods="OPTIONS,DELETE",
        failure_message="Error deleting category",
    )


# ---------------------------------------------------------------------------
# userTask
# ---------------------------------------------------------------------------


async def _create_user_task(request: Request, table: Table) -> Result:
    fields = TaskInput.from_body(request.body())
    result = await TaskRepository(table).create(request.user_id, fields)
    data = {
        "task": result.task.to_dict(),
        "notifications": [n.to_dict() for n in result.created],
        "failedNotifications": [
            {"reminderTimeBeforeDue": o.reminder_time_before_due, "error": o.error}
            for o in result.failed
        ],
    }
    if result.partial:
        return Result("Task created, but some notifications could not be created", data)
    return Result("Task and its notifications created successfully", data)


def create_user_task(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """POST /userTask - Create a task and its default notifications."""
    return run_operation(
        event,
        _create_user_task,
        methods="OPTIONS,POST",
        failure_message="Error creating task and its notifications",
    )


async def _update_user_task(request: Request, table: Table) -> Result:
    task_id = request.query("taskId", TASK_ID_MISSING)
    patch = TaskPatch.from_body(request.body())
    task = await TaskRepository(table).update(request.user_id, task_id, patch)
    return Result("Task updated successfully", task.to_dict())


def update_user_task(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """PATCH /userTask?taskId= - Partially update a task."""
    return run_operation(
        event,
        _update_user_task,
        methods="OPTIONS,PATCH",
        failure_message="Error updating task",
    )


async def _delete_user_task(request: Request, table: Table) -> Result:
    task_id = request.query("taskId", TASK_ID_MISSING)
    await TaskRepository(table).delete(request.user_id, task_id)
    return Result("Task deleted successfully")


def delete_user_task(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """DELETE /userTask?taskId= - Delete a task and its notifications."""
    return run_operation(
        event,
        _delete_user_task,
        methods="OPTIONS,DELETE",
        failure_message="Error deleting task",
    )


# ---------------------------------------------------------------------------
# taskNotification
# ---------------------------------------------------------------------------


async def _create_task_notification(request: Request, table: Table) -> Result:
    task_id = request.query("taskId", TASK_ID_MISSING)
    fields = NotificationInput.from_body(request.body())
    notification = await NotificationRepository(table).create(request.user_id, task_id, fields)
    return Result("Task notification created successfully", notification.to_dict())


def create_task_notification(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """POST /taskNotification?taskId= - Add a reminder to a task."""
    return run_operation(
        event,
        _create_task_notification,
        methods="OPTIONS,POST",
        failure_message="Error creating task notification",
    )


async def _update_task_notification(request: Request, table: Table) -> Result:
    task_id = request.query("taskId", TASK_ID_MISSING)
    notification_id = request.query("notificationId", NOTIFICATION_ID_MISSING)
    patch = NotificationPatch.from_body(request.body())
    notification = await NotificationRepository(table).update(
        request.user_id, task_id, notification_id, patch
    )
    return Result("Task notification updated successfully", notification.to_dict())


def update_task_notification(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """PATCH /taskNotification?taskId=&notificationId= - Partially update a reminder."""
    return run_operation(
        event,
        _update_task_notification,
        methods="OPTIONS,PATCH",
        failure_message="Error updating task notification",
    )


async def _delete_task_notification(request: Request, table: Table) -> Result:
    task_id = request.query("taskId", TASK_ID_MISSING)
    notification_id = request.query("notificationId", NOTIFICATION_ID_MISSING)
    await NotificationRepository(table).delete(request.user_id, task_id, notification_id)
    return Result("Task notification deleted successfully")


def delete_task_notification(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """DELETE /taskNotification?taskId=&notificationId= - Delete a reminder."""
    return run_operation(
        event,
        _delete_task_notification,
        methods="OPTIONS,DELETE",
        failure_message="Error deleting task notification",
    )
