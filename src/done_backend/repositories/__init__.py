"""Entity repositories over the single to-do table."""

from .base import MonotonicClock, Table
from .categories import CategoryRepository
from .notifications import NotificationRepository
from .settings import SettingsRepository
from .tasks import TaskRepository

__all__ = [
    "CategoryRepository",
    "MonotonicClock",
    "NotificationRepository",
    "SettingsRepository",
    "Table",
    "TaskRepository",
]
