"""Core models for done-backend."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar

from .exceptions import ValidationError

# Reminder offsets (minutes before due) offered as per-user defaults
DEFAULT_NOTIFICATION_MINUTES = (5, 15, 30, 45, 60)

# Display name for tasks without a live category
UNCATEGORIZED = "Uncategorized"


class SortMode(Enum):
    """How the task list is grouped in the UI."""

    CATEGORY = "category"
    DATE = "date"


def default_notification_map() -> dict[str, bool]:
    """Default reminder selection for a new user."""
    return {"5": True, "15": True, "30": False, "45": False, "60": False}


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def _bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be a boolean", field=name)
    return value


def _str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", field=name)
    return value


def _non_empty_str(name: str, value: Any) -> str:
    value = _str(name, value)
    if not value.strip():
        raise ValidationError(f"{name} must not be empty", field=name)
    return value


def _optional_str(name: str, value: Any) -> str | None:
    if value is None:
        return None
    return _non_empty_str(name, value)


def _int(name: str, value: Any) -> int:
    # bool is an int subclass; JSON numbers may arrive as integral floats
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number", field=name)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{name} must be a whole number", field=name)
        value = int(value)
    if value < 0:
        raise ValidationError(f"{name} must not be negative", field=name)
    return value


def _sort_mode(name: str, value: Any) -> SortMode:
    try:
        return SortMode(value)
    except ValueError:
        choices = ", ".join(m.value for m in SortMode)
        raise ValidationError(f"{name} must be one of: {choices}", field=name) from None


def _notification_map(name: str, value: Any, *, complete: bool) -> dict[str, bool]:
    """Validate a minutes->bool map keyed by the fixed reminder offsets."""
    if not isinstance(value, dict):
        raise ValidationError(f"{name} must be an object", field=name)
    allowed = {str(m) for m in DEFAULT_NOTIFICATION_MINUTES}
    unknown = sorted(set(map(str, value)) - allowed, key=str)
    if unknown:
        raise ValidationError(
            f"{name} has unsupported reminder times: {', '.join(unknown)}", field=name
        )
    result = {str(k): _bool(f"{name}.{k}", v) for k, v in value.items()}
    if complete and set(result) != allowed:
        missing = sorted(allowed - set(result), key=int)
        raise ValidationError(f"{name} is missing reminder times: {', '.join(missing)}")
    return result


def _require_body(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _reject_unknown(body: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(body) - allowed)
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(unknown)}")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class UserSettings:
    """Per-user preferences; one per user partition."""

    user_id: str
    twelve_hour: bool = True
    enable_notifications: bool = True
    display_email: bool = False
    default_notifications: dict[str, bool] = field(default_factory=default_notification_map)
    sort_mode: SortMode = SortMode.CATEGORY
    created_at: int = 0
    updated_at: int = 0

    @property
    def selected_reminder_minutes(self) -> list[int]:
        """Reminder offsets switched on, ascending."""
        return sorted(int(k) for k, on in self.default_notifications.items() if on)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "twelveHour": self.twelve_hour,
            "enableNotifications": self.enable_notifications,
            "displayEmail": self.display_email,
            "defaultNotifications": {
                str(m): self.default_notifications.get(str(m), False)
                for m in DEFAULT_NOTIFICATION_MINUTES
            },
            "sortMode": self.sort_mode.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Category:
    """A user-defined task grouping."""

    user_id: str
    category_id: str
    category_name: str
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Task:
    """
    A to-do item.

    ``task_due_date`` is epoch milliseconds, 0 when unset. ``category_id``
    may point at a deleted category.
    """

    user_id: str
    task_id: str
    task_title: str
    task_notes: str = ""
    task_due_date: int = 0
    task_completed: bool = False
    category_id: str | None = None
    created_at: int = 0
    updated_at: int = 0

    @property
    def has_due_date(self) -> bool:
        return self.task_due_date > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "taskId": self.task_id,
            "taskTitle": self.task_title,
            "taskNotes": self.task_notes,
            "taskDueDate": self.task_due_date,
            "taskCompleted": self.task_completed,
            "categoryId": self.category_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class TaskNotification:
    """A reminder attached to a task."""

    user_id: str
    task_id: str
    notification_id: str
    reminder_time_before_due: int
    notification_enabled: bool = True
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "taskId": self.task_id,
            "notificationId": self.notification_id,
            "notificationEnabled": self.notification_enabled,
            "reminderTimeBeforeDue": self.reminder_time_before_due,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


# ---------------------------------------------------------------------------
# Create inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryInput:
    """Validated fields for creating a category."""

    category_name: str

    @classmethod
    def from_body(cls, body: Any) -> "CategoryInput":
        body = _require_body(body)
        _reject_unknown(body, frozenset({"categoryName"}))
        if "categoryName" not in body:
            raise ValidationError("categoryName is required", field="categoryName")
        return cls(category_name=_non_empty_str("categoryName", body["categoryName"]))


@dataclass(frozen=True)
class TaskInput:
    """
    Validated fields for creating a task.

    ``default_notifications`` is the reminder selection to materialize as
    notification items alongside the task; only entries set to true are
    created.
    """

    task_title: str
    task_notes: str = ""
    task_due_date: int = 0
    task_completed: bool = False
    category_id: str | None = None
    default_notifications: dict[str, bool] | None = None

    _FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "taskTitle",
            "taskNotes",
            "taskDueDate",
            "taskCompleted",
            "categoryId",
            "defaultNotifications",
        }
    )

    @classmethod
    def from_body(cls, body: Any) -> "TaskInput":
        body = _require_body(body)
        _reject_unknown(body, cls._FIELDS)
        if "taskTitle" not in body:
            raise ValidationError("taskTitle is required", field="taskTitle")

        notifications = body.get("defaultNotifications")
        return cls(
            task_title=_non_empty_str("taskTitle", body["taskTitle"]),
            task_notes=_str("taskNotes", body.get("taskNotes") or ""),
            task_due_date=_int("taskDueDate", body.get("taskDueDate") or 0),
            task_completed=_bool("taskCompleted", body.get("taskCompleted", False)),
            category_id=_optional_str("categoryId", body.get("categoryId")),
            default_notifications=(
                _notification_map("defaultNotifications", notifications, complete=False)
                if notifications is not None
                else None
            ),
        )

    @property
    def selected_reminder_minutes(self) -> list[int]:
        """Reminder offsets selected for creation, ascending."""
        if not self.default_notifications:
            return []
        return sorted(int(k) for k, on in self.default_notifications.items() if on)


@dataclass(frozen=True)
class NotificationInput:
    """Validated fields for creating a task notification."""

    reminder_time_before_due: int
    notification_enabled: bool = True

    @classmethod
    def from_body(cls, body: Any) -> "NotificationInput":
        body = _require_body(body)
        _reject_unknown(body, frozenset({"reminderTimeBeforeDue", "notificationEnabled"}))
        if "reminderTimeBeforeDue" not in body:
            raise ValidationError(
                "reminderTimeBeforeDue is required", field="reminderTimeBeforeDue"
            )
        enabled = body.get("notificationEnabled")
        return cls(
            reminder_time_before_due=_int("reminderTimeBeforeDue", body["reminderTimeBeforeDue"]),
            notification_enabled=True if enabled is None else _bool("notificationEnabled", enabled),
        )


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------


class _Unset:
    """Marker for a patch field the caller did not supply."""

    _instance: ClassVar["_Unset | None"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class _Patch:
    """
    Sparse update: every field optional, UNSET when not supplied.

    Subclasses map each dataclass field to its stored attribute name and a
    validator through ``_ATTRIBUTES``.
    """

    _ATTRIBUTES: ClassVar[dict[str, tuple[str, Any]]] = {}

    @classmethod
    def from_body(cls, body: Any) -> Any:
        body = _require_body(body)
        by_attribute = {attr: (name, check) for name, (attr, check) in cls._ATTRIBUTES.items()}
        _reject_unknown(body, frozenset(by_attribute))
        values = {}
        for attr, value in body.items():
            name, check = by_attribute[attr]
            values[name] = check(attr, value)
        return cls(**values)

    def changes(self) -> dict[str, Any]:
        """Supplied fields keyed by stored attribute name."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            attr, _ = self._ATTRIBUTES[f.name]
            result[attr] = value.value if isinstance(value, Enum) else value
        return result

    @property
    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True)
class SettingsPatch(_Patch):
    """Partial settings update; ``default_notifications`` may be partial."""

    twelve_hour: Any = UNSET
    enable_notifications: Any = UNSET
    display_email: Any = UNSET
    default_notifications: Any = UNSET
    sort_mode: Any = UNSET

    _ATTRIBUTES: ClassVar[dict[str, tuple[str, Any]]] = {
        "twelve_hour": ("twelveHour", _bool),
        "enable_notifications": ("enableNotifications", _bool),
        "display_email": ("displayEmail", _bool),
        "default_notifications": (
            "defaultNotifications",
            lambda n, v: _notification_map(n, v, complete=False),
        ),
        "sort_mode": ("sortMode", _sort_mode),
    }


@dataclass(frozen=True)
class CategoryPatch(_Patch):
    """Partial category update."""

    category_name: Any = UNSET

    _ATTRIBUTES: ClassVar[dict[str, tuple[str, Any]]] = {
        "category_name": ("categoryName", _non_empty_str),
    }


@dataclass(frozen=True)
class TaskPatch(_Patch):
    """Partial task update; ``category_id=None`` clears the category."""

    task_title: Any = UNSET
    task_notes: Any = UNSET
    task_due_date: Any = UNSET
    task_completed: Any = UNSET
    category_id: Any = UNSET

    _ATTRIBUTES: ClassVar[dict[str, tuple[str, Any]]] = {
        "task_title": ("taskTitle", _non_empty_str),
        "task_notes": ("taskNotes", _str),
        "task_due_date": ("taskDueDate", _int),
        "task_completed": ("taskCompleted", _bool),
        "category_id": ("categoryId", _optional_str),
    }


@dataclass(frozen=True)
class NotificationPatch(_Patch):
    """Partial task notification update."""

    notification_enabled: Any = UNSET
    reminder_time_before_due: Any = UNSET

    _ATTRIBUTES: ClassVar[dict[str, tuple[str, Any]]] = {
        "notification_enabled": ("notificationEnabled", _bool),
        "reminder_time_before_due": ("reminderTimeBeforeDue", _int),
    }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class NotificationOutcome:
    """Result of writing one notification during task creation."""

    reminder_time_before_due: int
    notification: TaskNotification | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.notification is not None


@dataclass
class TaskCreateResult:
    """
    A created task plus the per-notification outcomes of its reminders.

    Notification writes are best-effort: a failed reminder does not undo the
    task or the reminders that were written.
    """

    task: Task
    notifications: list[NotificationOutcome] = field(default_factory=list)

    @property
    def created(self) -> list[TaskNotification]:
        return [o.notification for o in self.notifications if o.notification is not None]

    @property
    def failed(self) -> list[NotificationOutcome]:
        return [o for o in self.notifications if not o.succeeded]

    @property
    def partial(self) -> bool:
        """True if at least one reminder could not be written."""
        return bool(self.failed)


@dataclass
class UserData:
    """Everything stored for one user, as returned at sign-in."""

    settings: UserSettings
    categories: list[Category] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    notifications: list[TaskNotification] = field(default_factory=list)
    created: bool = False

    def category_name_for(self, task: Task) -> str:
        """Name of the task's category, or UNCATEGORIZED if it is unset or gone."""
        if task.category_id is None:
            return UNCATEGORIZED
        for category in self.categories:
            if category.category_id == task.category_id:
                return category.category_name
        return UNCATEGORIZED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "userSettings": self.settings.to_dict(),
            "userCategories": [c.to_dict() for c in self.categories],
            "userTasks": [t.to_dict() for t in self.tasks],
            "taskNotifications": [n.to_dict() for n in self.notifications],
        }
