"""Pytest fixtures for done-backend tests."""

import asyncio
from collections.abc import Awaitable
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from done_backend.repositories import Table
from done_backend.schema import get_table_definition

TEST_TABLE = "test_done"
TEST_REGION = "us-east-1"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    # Unset AWS_ENDPOINT_URL to ensure moto intercepts requests
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Mock DynamoDB for tests."""
    with mock_aws():
        yield


def _patch_aiobotocore_response():
    """
    Patch aiobotocore to work with moto's sync responses.

    Moto returns botocore.awsrequest.AWSResponse which has sync content,
    but aiobotocore expects async content. This patch wraps the response
    handling to convert sync content to async.

    See: https://github.com/aio-libs/aiobotocore/discussions/1300
    """
    from aiobotocore import endpoint

    original_convert = endpoint.convert_to_response_dict

    async def patched_convert(http_response, operation_model):
        # If content is not awaitable (moto's sync response), wrap it
        if hasattr(http_response, "_content") and not isinstance(http_response._content, Awaitable):
            fut: asyncio.Future[bytes] = asyncio.Future()
            fut.set_result(http_response.content)
            http_response._content = fut
        return await original_convert(http_response, operation_model)

    return patch.object(endpoint, "convert_to_response_dict", patched_convert)


@pytest.fixture
def patched_aiobotocore():
    """Apply the aiobotocore/moto response patch for the whole test."""
    with _patch_aiobotocore_response():
        yield


@pytest.fixture
async def table(mock_dynamodb):
    """Open Table on a freshly created moto table."""
    with _patch_aiobotocore_response():
        table = Table(table_name=TEST_TABLE, region=TEST_REGION)
        await table.create_table()
        yield table
        await table.close()


@pytest.fixture
def sync_table(mock_dynamodb, patched_aiobotocore, monkeypatch):
    """
    Moto table created with boto3, for code that runs its own event loop.

    Also points TABLE_NAME at it, so Lambda handlers pick it up.
    """
    client = boto3.client("dynamodb", region_name=TEST_REGION)
    client.create_table(**get_table_definition(TEST_TABLE))
    monkeypatch.setenv("TABLE_NAME", TEST_TABLE)
    monkeypatch.setenv("AWS_REGION", TEST_REGION)
    yield client
