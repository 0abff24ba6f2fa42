"""
Composite key codec for the single to-do table.

Every item lives in its owner's partition (``USER#<userId>``) and is told
apart by a sort key made of a kind tag and the entity ids:

    SETTINGS#
    CATEGORY#<categoryId>
    TASK#<taskId>
    TASK#<taskId>NOTIFICATION#<notificationId>

A notification's sort key embeds its task's key, so decoding cannot split on
the generic ``#`` separator. Tags are matched positionally, in a fixed order:
``TASK#`` at the start, then the first ``NOTIFICATION#`` after it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from . import schema
from .exceptions import MalformedKeyError

_TAG_LITERALS = (
    schema.USER_PREFIX,
    schema.SETTINGS_PREFIX,
    schema.CATEGORY_PREFIX,
    schema.TASK_PREFIX,
    schema.NOTIFICATION_PREFIX,
)


class EntityKind(Enum):
    """Kinds of item stored in a user partition."""

    SETTINGS = "settings"
    CATEGORY = "category"
    TASK = "task"
    NOTIFICATION = "notification"


def reserved_tag(value: str) -> str | None:
    """Return the first key tag literal found inside an id, if any."""
    for tag in _TAG_LITERALS:
        if tag in value:
            return tag
    return None


def _check_id(value: str, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedKeyError(str(value), f"{name} must be a non-empty string")
    tag = reserved_tag(value)
    if tag is not None:
        raise MalformedKeyError(value, f"{name} must not contain {tag!r}")
    return value


def pk_user(user_id: str) -> str:
    """Build partition key for a user."""
    return f"{schema.USER_PREFIX}{_check_id(user_id, 'user_id')}"


def category_prefix() -> str:
    """Sort key prefix matching every category in a partition."""
    return schema.CATEGORY_PREFIX


def task_prefix() -> str:
    """Sort key prefix matching every task and notification in a partition."""
    return schema.TASK_PREFIX


def notification_prefix(task_id: str) -> str:
    """Sort key prefix matching the notifications of one task."""
    return f"{schema.TASK_PREFIX}{_check_id(task_id, 'task_id')}{schema.NOTIFICATION_PREFIX}"


@dataclass(frozen=True)
class SettingsKey:
    """Key of the per-user settings singleton."""

    user_id: str

    kind = EntityKind.SETTINGS

    def __post_init__(self) -> None:
        _check_id(self.user_id, "user_id")

    @property
    def pk(self) -> str:
        return pk_user(self.user_id)

    @property
    def sk(self) -> str:
        return schema.SETTINGS_PREFIX

    @property
    def ids(self) -> tuple[str, ...]:
        return ()

    def to_item_key(self) -> dict[str, Any]:
        """Low-level DynamoDB key map."""
        return {schema.PK: {"S": self.pk}, schema.SK: {"S": self.sk}}


@dataclass(frozen=True)
class CategoryKey:
    """Key of a category item."""

    user_id: str
    category_id: str

    kind = EntityKind.CATEGORY

    def __post_init__(self) -> None:
        _check_id(self.user_id, "user_id")
        _check_id(self.category_id, "category_id")

    @property
    def pk(self) -> str:
        return pk_user(self.user_id)

    @property
    def sk(self) -> str:
        return f"{schema.CATEGORY_PREFIX}{self.category_id}"

    @property
    def ids(self) -> tuple[str, ...]:
        return (self.category_id,)

    def to_item_key(self) -> dict[str, Any]:
        """Low-level DynamoDB key map."""
        return {schema.PK: {"S": self.pk}, schema.SK: {"S": self.sk}}


@dataclass(frozen=True)
class TaskKey:
    """Key of a task item."""

    user_id: str
    task_id: str

    kind = EntityKind.TASK

    def __post_init__(self) -> None:
        _check_id(self.user_id, "user_id")
        _check_id(self.task_id, "task_id")

    @property
    def pk(self) -> str:
        return pk_user(self.user_id)

    @property
    def sk(self) -> str:
        return f"{schema.TASK_PREFIX}{self.task_id}"

    @property
    def ids(self) -> tuple[str, ...]:
        return (self.task_id,)

    def to_item_key(self) -> dict[str, Any]:
        """Low-level DynamoDB key map."""
        return {schema.PK: {"S": self.pk}, schema.SK: {"S": self.sk}}


@dataclass(frozen=True)
class NotificationKey:
    """Key of a task notification item."""

    user_id: str
    task_id: str
    notification_id: str

    kind = EntityKind.NOTIFICATION

    def __post_init__(self) -> None:
        _check_id(self.user_id, "user_id")
        _check_id(self.task_id, "task_id")
        _check_id(self.notification_id, "notification_id")

    @property
    def pk(self) -> str:
        return pk_user(self.user_id)

    @property
    def sk(self) -> str:
        return (
            f"{schema.TASK_PREFIX}{self.task_id}"
            f"{schema.NOTIFICATION_PREFIX}{self.notification_id}"
        )

    @property
    def ids(self) -> tuple[str, ...]:
        return (self.task_id, self.notification_id)

    def to_item_key(self) -> dict[str, Any]:
        """Low-level DynamoDB key map."""
        return {schema.PK: {"S": self.pk}, schema.SK: {"S": self.sk}}


EntityKey = SettingsKey | CategoryKey | TaskKey | NotificationKey

_KEY_TYPES: dict[EntityKind, type] = {
    EntityKind.SETTINGS: SettingsKey,
    EntityKind.CATEGORY: CategoryKey,
    EntityKind.TASK: TaskKey,
    EntityKind.NOTIFICATION: NotificationKey,
}


def make_key(kind: EntityKind, user_id: str, *ids: str) -> EntityKey:
    """Build the tagged key for ``kind`` from its user id and entity ids."""
    key_type = _KEY_TYPES[kind]
    expected = len(key_type.__dataclass_fields__) - 1
    if len(ids) != expected:
        raise MalformedKeyError(
            "/".join(ids), f"{kind.value} key takes {expected} id(s), got {len(ids)}"
        )
    key: EntityKey = key_type(user_id, *ids)
    return key


def encode(kind: EntityKind, user_id: str, *ids: str) -> tuple[str, str]:
    """Encode ``(kind, user_id, ids)`` into a ``(pk, sk)`` pair."""
    key = make_key(kind, user_id, *ids)
    return key.pk, key.sk


def decode(sk: str) -> tuple[EntityKind, tuple[str, ...]]:
    """
    Decode a sort key into its kind and entity ids.

    Raises:
        MalformedKeyError: If a required tag is missing or an id is empty
    """
    if sk == schema.SETTINGS_PREFIX:
        return EntityKind.SETTINGS, ()

    if sk.startswith(schema.CATEGORY_PREFIX):
        category_id = sk[len(schema.CATEGORY_PREFIX) :]
        if not category_id:
            raise MalformedKeyError(sk, "missing category id")
        return EntityKind.CATEGORY, (category_id,)

    if sk.startswith(schema.TASK_PREFIX):
        rest = sk[len(schema.TASK_PREFIX) :]
        task_id, tag, notification_id = rest.partition(schema.NOTIFICATION_PREFIX)
        if not task_id:
            raise MalformedKeyError(sk, "missing task id")
        if not tag:
            return EntityKind.TASK, (task_id,)
        if not notification_id:
            raise MalformedKeyError(sk, "missing notification id")
        return EntityKind.NOTIFICATION, (task_id, notification_id)

    raise MalformedKeyError(sk, "no known kind tag")


def decode_user(pk: str) -> str:
    """Decode a partition key into its user id."""
    if not pk.startswith(schema.USER_PREFIX) or len(pk) == len(schema.USER_PREFIX):
        raise MalformedKeyError(pk, f"expected {schema.USER_PREFIX}<userId>")
    return pk[len(schema.USER_PREFIX) :]


def decode_key(pk: str, sk: str) -> EntityKey:
    """Decode a full ``(pk, sk)`` pair into a tagged key."""
    kind, ids = decode(sk)
    return make_key(kind, decode_user(pk), *ids)


def key_from_item(item: dict[str, Any]) -> EntityKey:
    """Decode the key attributes of a low-level DynamoDB item."""
    try:
        pk = item[schema.PK]["S"]
        sk = item[schema.SK]["S"]
    except KeyError as e:
        raise MalformedKeyError(str(item.get(schema.SK)), f"missing key attribute {e}") from e
    return decode_key(pk, sk)
