"""Tests for models and request-body validation."""

import pytest

from done_backend.exceptions import ValidationError
from done_backend.models import (
    UNSET,
    Category,
    CategoryInput,
    NotificationInput,
    SettingsPatch,
    SortMode,
    Task,
    TaskCreateResult,
    TaskInput,
    TaskPatch,
    UserData,
    UserSettings,
)


class TestUserSettings:
    """Tests for the settings entity."""

    def test_defaults(self):
        settings = UserSettings(user_id="u1")
        assert settings.to_dict() == {
            "twelveHour": True,
            "enableNotifications": True,
            "displayEmail": False,
            "defaultNotifications": {
                "5": True,
                "15": True,
                "30": False,
                "45": False,
                "60": False,
            },
            "sortMode": "category",
            "createdAt": 0,
            "updatedAt": 0,
        }

    def test_selected_reminder_minutes(self):
        settings = UserSettings(user_id="u1")
        assert settings.selected_reminder_minutes == [5, 15]


class TestTaskInput:
    """Tests for task creation bodies."""

    def test_title_required(self):
        with pytest.raises(ValidationError, match="taskTitle is required"):
            TaskInput.from_body({"taskNotes": "x"})

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskInput.from_body({"taskTitle": "   "})

    def test_optional_fields_default(self):
        fields = TaskInput.from_body({"taskTitle": "Buy milk"})
        assert fields.task_notes == ""
        assert fields.task_due_date == 0
        assert fields.task_completed is False
        assert fields.category_id is None
        assert fields.selected_reminder_minutes == []

    def test_selected_reminders(self):
        fields = TaskInput.from_body(
            {
                "taskTitle": "Buy milk",
                "taskDueDate": 1700000000000,
                "defaultNotifications": {"5": True, "15": False, "60": True},
            }
        )
        assert fields.selected_reminder_minutes == [5, 60]

    def test_unknown_reminder_time_rejected(self):
        with pytest.raises(ValidationError, match="unsupported reminder times"):
            TaskInput.from_body({"taskTitle": "x", "defaultNotifications": {"7": True}})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported fields: owner"):
            TaskInput.from_body({"taskTitle": "x", "owner": "u2"})

    def test_body_must_be_object(self):
        with pytest.raises(ValidationError):
            TaskInput.from_body(["taskTitle"])

    def test_integral_float_due_date_accepted(self):
        fields = TaskInput.from_body({"taskTitle": "x", "taskDueDate": 1700000000000.0})
        assert fields.task_due_date == 1700000000000

    @pytest.mark.parametrize("due", [True, "tomorrow", -1, 1.5])
    def test_bad_due_date_rejected(self, due):
        with pytest.raises(ValidationError):
            TaskInput.from_body({"taskTitle": "x", "taskDueDate": due})


class TestOtherInputs:
    def test_category_name_required(self):
        with pytest.raises(ValidationError):
            CategoryInput.from_body({})

    def test_notification_defaults_enabled(self):
        fields = NotificationInput.from_body({"reminderTimeBeforeDue": 30})
        assert fields.notification_enabled is True

    def test_notification_requires_reminder_time(self):
        with pytest.raises(ValidationError, match="reminderTimeBeforeDue is required"):
            NotificationInput.from_body({"notificationEnabled": False})


class TestPatches:
    """Tests for partial-update bodies."""

    def test_only_supplied_fields_change(self):
        patch = TaskPatch.from_body({"taskCompleted": True})
        assert patch.task_title is UNSET
        assert patch.changes() == {"taskCompleted": True}

    def test_category_can_be_cleared(self):
        patch = TaskPatch.from_body({"categoryId": None})
        assert patch.changes() == {"categoryId": None}

    def test_empty_patch(self):
        assert TaskPatch.from_body({}).is_empty

    def test_key_fields_rejected(self):
        with pytest.raises(ValidationError):
            TaskPatch.from_body({"taskId": "t2"})

    def test_settings_sort_mode(self):
        patch = SettingsPatch.from_body({"sortMode": "date"})
        assert patch.sort_mode is SortMode.DATE
        assert patch.changes() == {"sortMode": "date"}

    def test_settings_bad_sort_mode(self):
        with pytest.raises(ValidationError, match="sortMode must be one of"):
            SettingsPatch.from_body({"sortMode": "priority"})

    def test_settings_partial_notification_map(self):
        patch = SettingsPatch.from_body({"defaultNotifications": {"30": True}})
        assert patch.changes() == {"defaultNotifications": {"30": True}}

    def test_settings_non_bool_rejected(self):
        with pytest.raises(ValidationError):
            SettingsPatch.from_body({"twelveHour": "yes"})


class TestResults:
    def test_task_create_result_partial(self):
        from done_backend.models import NotificationOutcome, TaskNotification

        task = Task(user_id="u1", task_id="t1", task_title="x")
        ok = TaskNotification(
            user_id="u1", task_id="t1", notification_id="n1", reminder_time_before_due=5
        )
        result = TaskCreateResult(
            task=task,
            notifications=[
                NotificationOutcome(reminder_time_before_due=5, notification=ok),
                NotificationOutcome(reminder_time_before_due=15, error="throttled"),
            ],
        )
        assert result.partial
        assert result.created == [ok]
        assert [o.reminder_time_before_due for o in result.failed] == [15]

    def test_category_name_for_dangling_reference(self):
        data = UserData(
            settings=UserSettings(user_id="u1"),
            categories=[Category(user_id="u1", category_id="c1", category_name="Work")],
        )
        assert data.category_name_for(Task("u1", "t1", "a", category_id="c1")) == "Work"
        assert data.category_name_for(Task("u1", "t2", "b", category_id="gone")) == "Uncategorized"
        assert data.category_name_for(Task("u1", "t3", "c")) == "Uncategorized"

    def test_user_data_wire_format(self):
        data = UserData(settings=UserSettings(user_id="u1"))
        assert set(data.to_dict()) == {
            "userSettings",
            "userCategories",
            "userTasks",
            "taskNotifications",
        }
