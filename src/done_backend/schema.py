"""DynamoDB schema definitions for the single to-do table."""

from typing import Any

# Table and key attribute names
DEFAULT_TABLE_NAME = "done"
PK = "pk"
SK = "sk"

# Key tags
USER_TAG = "USER"
SETTINGS_TAG = "SETTINGS"
CATEGORY_TAG = "CATEGORY"
TASK_TAG = "TASK"
NOTIFICATION_TAG = "NOTIFICATION"
SEPARATOR = "#"

# Key prefixes
USER_PREFIX = USER_TAG + SEPARATOR
SETTINGS_PREFIX = SETTINGS_TAG + SEPARATOR
CATEGORY_PREFIX = CATEGORY_TAG + SEPARATOR
TASK_PREFIX = TASK_TAG + SEPARATOR
NOTIFICATION_PREFIX = NOTIFICATION_TAG + SEPARATOR

# BatchWriteItem accepts at most 25 requests per call
BATCH_WRITE_LIMIT = 25

# Conditional update attempts before giving up on the updatedAt race
UPDATE_ATTEMPTS = 3

# Shared timestamp attributes
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


def get_table_definition(table_name: str) -> dict[str, Any]:
    """
    Get the DynamoDB table definition for CreateTable.

    Returns a dictionary suitable for boto3 create_table(). The table has no
    secondary indexes; every query is served by the partition key plus a
    sort-key prefix.
    """
    return {
        "TableName": table_name,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [
            {"AttributeName": PK, "AttributeType": "S"},
            {"AttributeName": SK, "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": PK, "KeyType": "HASH"},
            {"AttributeName": SK, "KeyType": "RANGE"},
        ],
    }
