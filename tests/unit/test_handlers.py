"""Tests for the API Lambda handlers."""

import json

import pytest

from done_backend import handlers


def _event(method, body=None, query=None, user_id="u1", path="/"):
    headers = {"Content-Type": "application/json"}
    if user_id is not None:
        headers["X-User-Id"] = user_id
    return {
        "httpMethod": method,
        "path": path,
        "headers": headers,
        "queryStringParameters": query,
        "body": json.dumps(body) if body is not None else None,
    }


def _body(response):
    return json.loads(response["body"])


@pytest.fixture
def frontend(monkeypatch):
    monkeypatch.setenv("FRONTEND_URL", "done.example.test")


class TestRequestValidation:
    """Checks that run before any table access."""

    def test_missing_user_id(self, sync_table):
        response = handlers.create_user_category(
            _event("POST", {"categoryName": "Work"}, user_id=None), None
        )

        assert response["statusCode"] == 400
        assert _body(response) == {"message": "User ID is missing in the request headers"}

    def test_lowercase_user_id_header(self, sync_table):
        event = _event("POST", {"categoryName": "Work"}, user_id=None)
        event["headers"]["x-user-id"] = "u1"

        response = handlers.create_user_category(event, None)

        assert response["statusCode"] == 200

    def test_missing_body(self, sync_table):
        response = handlers.create_user_task(_event("POST"), None)

        assert response["statusCode"] == 400
        assert _body(response)["message"] == "Request body is missing"

    def test_invalid_json_body(self, sync_table):
        event = _event("POST")
        event["body"] = "{not json"

        response = handlers.create_user_task(event, None)

        assert response["statusCode"] == 400

    def test_missing_task_id(self, sync_table):
        response = handlers.update_user_task(_event("PATCH", {"taskCompleted": True}), None)

        assert response["statusCode"] == 400
        assert (
            _body(response)["message"]
            == "Task ID is missing in the request query string parameters"
        )

    def test_missing_notification_id(self, sync_table):
        response = handlers.delete_task_notification(
            _event("DELETE", query={"taskId": "t1"}), None
        )

        assert response["statusCode"] == 400
        assert (
            _body(response)["message"]
            == "Notification ID is missing in the request query string parameters"
        )

    def test_task_id_with_key_tag(self, sync_table):
        response = handlers.update_user_task(
            _event("PATCH", {"taskCompleted": True}, query={"taskId": "abcNOTIFICATION#1"}), None
        )

        assert response["statusCode"] == 400
        assert _body(response) == {"message": "taskId must not contain 'NOTIFICATION#'"}

    def test_user_id_with_key_tag(self, sync_table):
        response = handlers.create_user_category(
            _event("POST", {"categoryName": "Work"}, user_id="USER#x"), None
        )

        assert response["statusCode"] == 400
        assert _body(response) == {"message": "X-User-Id must not contain 'USER#'"}
        assert sync_table.scan(TableName="test_done")["Count"] == 0

    def test_unparseable_environment(self, sync_table, monkeypatch):
        monkeypatch.setenv("JWKS_CACHE_SECONDS", "soon")

        response = handlers.initialize_user(_event("POST"), None)

        assert response["statusCode"] == 500
        assert _body(response) == {
            "message": "JWKS_CACHE_SECONDS must be an integer, got 'soon'"
        }

    def test_table_name_not_set(self, mock_dynamodb, monkeypatch):
        monkeypatch.delenv("TABLE_NAME", raising=False)

        response = handlers.initialize_user(_event("POST"), None)

        assert response["statusCode"] == 500
        assert _body(response)["message"] == "Table name not set"

    def test_cors_headers(self, sync_table, frontend):
        response = handlers.delete_user_task(_event("DELETE", query={"taskId": "t1"}), None)

        assert response["headers"]["Access-Control-Allow-Origin"] == "https://done.example.test"
        assert response["headers"]["Access-Control-Allow-Methods"] == "OPTIONS,DELETE"
        assert "X-User-Id" in response["headers"]["Access-Control-Allow-Headers"]

    def test_preflight(self, sync_table):
        response = handlers.update_user_settings(_event("OPTIONS", user_id=None), None)
        assert response["statusCode"] == 200


class TestUserAccount:
    """Tests for sign-in and account deletion."""

    def test_first_sign_in_creates_settings(self, sync_table):
        response = handlers.initialize_user(_event("POST"), None)
        body = _body(response)

        assert response["statusCode"] == 200
        assert body["message"] == "User and settings created successfully"
        assert body["data"]["userSettings"]["sortMode"] == "category"
        assert body["data"]["userCategories"] == []
        assert body["data"]["userTasks"] == []
        assert body["data"]["taskNotifications"] == []

    def test_returning_user_gets_data(self, sync_table):
        handlers.initialize_user(_event("POST"), None)
        handlers.create_user_category(_event("POST", {"categoryName": "Work"}), None)
        handlers.create_user_task(
            _event("POST", {"taskTitle": "a", "defaultNotifications": {"5": True}}), None
        )

        body = _body(handlers.initialize_user(_event("POST"), None))

        assert body["message"] == "User data retrieved successfully"
        assert [c["categoryName"] for c in body["data"]["userCategories"]] == ["Work"]
        assert [t["taskTitle"] for t in body["data"]["userTasks"]] == ["a"]
        assert len(body["data"]["taskNotifications"]) == 1

    def test_delete_account(self, sync_table):
        handlers.initialize_user(_event("POST"), None)
        handlers.create_user_category(_event("POST", {"categoryName": "Work"}), None)

        response = handlers.delete_account(_event("DELETE"), None)

        assert response["statusCode"] == 200
        assert _body(response)["data"] == {"itemsDeleted": 2}
        assert sync_table.scan(TableName="test_done")["Count"] == 0


class TestUserSettings:
    def test_update(self, sync_table):
        handlers.initialize_user(_event("POST"), None)

        response = handlers.update_user_settings(_event("PATCH", {"twelveHour": False}), None)

        assert response["statusCode"] == 200
        assert _body(response)["data"]["twelveHour"] is False

    def test_update_before_sign_in(self, sync_table):
        response = handlers.update_user_settings(_event("PATCH", {"twelveHour": False}), None)
        assert response["statusCode"] == 404

    def test_invalid_value(self, sync_table):
        handlers.initialize_user(_event("POST"), None)
        response = handlers.update_user_settings(_event("PATCH", {"sortMode": "nope"}), None)
        assert response["statusCode"] == 400


class TestCategories:
    def test_create_rename_delete(self, sync_table):
        created = _body(
            handlers.create_user_category(_event("POST", {"categoryName": "Work"}), None)
        )
        category_id = created["data"]["categoryId"]
        query = {"categoryId": category_id}

        renamed = handlers.update_user_category(
            _event("PATCH", {"categoryName": "Job"}, query=query), None
        )
        deleted = handlers.delete_user_category(_event("DELETE", query=query), None)
        again = handlers.delete_user_category(_event("DELETE", query=query), None)

        assert created["message"] == "Category created successfully"
        assert _body(renamed)["data"]["categoryName"] == "Job"
        assert deleted["statusCode"] == 200
        assert again["statusCode"] == 404


class TestTasks:
    def test_create_with_notifications(self, sync_table):
        response = handlers.create_user_task(
            _event(
                "POST",
                {
                    "taskTitle": "Water plants",
                    "taskDueDate": 1700000000000,
                    "defaultNotifications": {"5": True, "15": True, "30": False},
                },
            ),
            None,
        )
        body = _body(response)

        assert response["statusCode"] == 200
        assert body["message"] == "Task and its notifications created successfully"
        assert body["data"]["task"]["taskTitle"] == "Water plants"
        assert sorted(n["reminderTimeBeforeDue"] for n in body["data"]["notifications"]) == [5, 15]
        assert body["data"]["failedNotifications"] == []

    def test_update_and_delete(self, sync_table):
        created = _body(handlers.create_user_task(_event("POST", {"taskTitle": "a"}), None))
        query = {"taskId": created["data"]["task"]["taskId"]}

        updated = handlers.update_user_task(
            _event("PATCH", {"taskCompleted": True}, query=query), None
        )
        deleted = handlers.delete_user_task(_event("DELETE", query=query), None)

        assert _body(updated)["data"]["taskCompleted"] is True
        assert _body(deleted)["message"] == "Task deleted successfully"

    def test_update_unknown_task(self, sync_table):
        response = handlers.update_user_task(
            _event("PATCH", {"taskCompleted": True}, query={"taskId": "ghost"}), None
        )
        assert response["statusCode"] == 404

    def test_other_users_task_is_not_found(self, sync_table):
        created = _body(handlers.create_user_task(_event("POST", {"taskTitle": "a"}), None))
        query = {"taskId": created["data"]["task"]["taskId"]}

        response = handlers.delete_user_task(_event("DELETE", query=query, user_id="u2"), None)

        assert response["statusCode"] == 404


class TestTaskNotifications:
    def test_create_update_delete(self, sync_table):
        created = _body(
            handlers.create_task_notification(
                _event("POST", {"reminderTimeBeforeDue": 30}, query={"taskId": "t1"}), None
            )
        )
        query = {"taskId": "t1", "notificationId": created["data"]["notificationId"]}

        updated = handlers.update_task_notification(
            _event("PATCH", {"notificationEnabled": False}, query=query), None
        )
        deleted = handlers.delete_task_notification(_event("DELETE", query=query), None)

        assert created["message"] == "Task notification created successfully"
        assert _body(updated)["data"]["notificationEnabled"] is False
        assert _body(deleted)["message"] == "Task notification deleted successfully"

    def test_delete_unknown(self, sync_table):
        response = handlers.delete_task_notification(
            _event("DELETE", query={"taskId": "t1", "notificationId": "n1"}), None
        )
        assert response["statusCode"] == 404


class TestStoreFailures:
    def test_store_error_is_500_with_error_text(self, sync_table, monkeypatch):
        from done_backend.exceptions import StoreError
        from done_backend.repositories import CategoryRepository

        async def broken(self, user_id, fields):
            raise StoreError("PutItem", "throttled", code="ThrottlingException")

        monkeypatch.setattr(CategoryRepository, "create", broken)

        response = handlers.create_user_category(_event("POST", {"categoryName": "Work"}), None)
        body = _body(response)

        assert response["statusCode"] == 500
        assert body["message"] == "Error creating category"
        assert "ThrottlingException" in body["error"]
