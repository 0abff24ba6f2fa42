"""Account-level operations: first sign-in and account deletion."""

from .cascade import CascadeDeleter, CascadeResult
from .logger import get_logger
from .models import UserData
from .repositories import (
    CategoryRepository,
    NotificationRepository,
    SettingsRepository,
    Table,
    TaskRepository,
)

logger = get_logger(__name__)


class AccountService:
    """
    Operations spanning every entity of a user partition.

    Example:
        async with Table("done") as table:
            service = AccountService(table)
            data = await service.initialize("user-1")
    """

    def __init__(self, table: Table) -> None:
        self.table = table
        self.settings = SettingsRepository(table)
        self.categories = CategoryRepository(table)
        self.notifications = NotificationRepository(table)
        self.tasks = TaskRepository(table, notifications=self.notifications)
        self.deleter = CascadeDeleter(table)

    async def initialize(self, user_id: str) -> UserData:
        """
        Load everything stored for a user, creating default settings on
        first sign-in.

        A new user gets the default settings and empty lists; no other query
        is issued.
        """
        settings, created = await self.settings.get_or_create(user_id)
        if created:
            logger.info("Created default settings", user_id=user_id)
            return UserData(settings=settings, created=True)

        categories = await self.categories.list_by_user(user_id)
        tasks = await self.tasks.list_by_user(user_id)
        notifications = await self.notifications.list_by_user(user_id)
        return UserData(
            settings=settings,
            categories=categories,
            tasks=tasks,
            notifications=notifications,
        )

    async def delete_account(self, user_id: str) -> CascadeResult:
        """Delete every item in the user's partition."""
        return await self.deleter.delete_partition(user_id)
