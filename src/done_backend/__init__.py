"""
done-backend: single-table DynamoDB backend for the Done to-do app.

This package provides:
- Typed composite keys for settings, categories, tasks, and notifications
- Async entity repositories with conditional writes
- Paginated, batched cascade deletion of a user's items
- JWT verification against a JWK set, and the API Gateway authorizer
- One Lambda entrypoint per API operation (``done_backend.handlers``)

Example:
    from done_backend import AccountService, Table, TaskRepository

    async with Table("done", region="us-east-1") as table:
        data = await AccountService(table).initialize("user-1")
        result = await TaskRepository(table).create(
            "user-1",
            {"taskTitle": "Water plants", "defaultNotifications": {"5": True}},
        )
"""

from importlib.metadata import PackageNotFoundError, version

from .account import AccountService
from .cascade import CascadeDeleter, CascadeResult
from .config import Config
from .exceptions import (
    AuthError,
    ConfigurationError,
    DoneError,
    EntityError,
    EntityExistsError,
    EntityNotFoundError,
    InfrastructureError,
    InvalidSignatureError,
    KeyNotFoundError,
    MalformedKeyError,
    StoreError,
    TokenExpiredError,
    ValidationError,
)
from .keys import CategoryKey, EntityKind, NotificationKey, SettingsKey, TaskKey
from .models import (
    Category,
    CategoryInput,
    CategoryPatch,
    NotificationInput,
    NotificationOutcome,
    NotificationPatch,
    SettingsPatch,
    SortMode,
    Task,
    TaskCreateResult,
    TaskInput,
    TaskNotification,
    TaskPatch,
    UserData,
    UserSettings,
)
from .repositories import (
    CategoryRepository,
    MonotonicClock,
    NotificationRepository,
    SettingsRepository,
    Table,
    TaskRepository,
)

try:
    __version__ = version("done-backend")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "__version__",
    # Storage
    "Table",
    "MonotonicClock",
    "SettingsRepository",
    "CategoryRepository",
    "TaskRepository",
    "NotificationRepository",
    "CascadeDeleter",
    "CascadeResult",
    "AccountService",
    "Config",
    # Keys
    "EntityKind",
    "SettingsKey",
    "CategoryKey",
    "TaskKey",
    "NotificationKey",
    # Models
    "UserSettings",
    "Category",
    "Task",
    "TaskNotification",
    "UserData",
    "SortMode",
    "CategoryInput",
    "TaskInput",
    "NotificationInput",
    "SettingsPatch",
    "CategoryPatch",
    "TaskPatch",
    "NotificationPatch",
    "NotificationOutcome",
    "TaskCreateResult",
    # Exceptions
    "DoneError",
    "EntityError",
    "InfrastructureError",
    "AuthError",
    "ValidationError",
    "EntityNotFoundError",
    "EntityExistsError",
    "MalformedKeyError",
    "StoreError",
    "ConfigurationError",
    "InvalidSignatureError",
    "TokenExpiredError",
    "KeyNotFoundError",
]
