"""Command-line interface for done-backend table administration."""

import asyncio
import json
import sys

import click

from .account import AccountService
from .exceptions import DoneError
from .models import UserData
from .repositories import Table
from .schema import DEFAULT_TABLE_NAME


def _table_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--endpoint-url",
        help="AWS endpoint URL (e.g., http://localhost:8000 for DynamoDB Local)",
    )(func)
    func = click.option("--region", help="AWS region (default: use boto3 defaults)")(func)
    func = click.option(
        "--table-name",
        default=DEFAULT_TABLE_NAME,
        envvar="TABLE_NAME",
        show_default=True,
        help="DynamoDB table name",
    )(func)
    return func


@click.group()
@click.version_option(package_name="done-backend")
def cli() -> None:
    """done-backend table administration CLI."""
    pass


@cli.command("create-table")
@_table_options
def create_table(table_name: str, region: str | None, endpoint_url: str | None) -> None:
    """Create the to-do table if it does not exist."""

    async def _create() -> None:
        async with Table(table_name, region=region, endpoint_url=endpoint_url) as table:
            await table.create_table()

    try:
        asyncio.run(_create())
    except DoneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Table ready: {table_name}")


@cli.command("delete-table")
@_table_options
@click.confirmation_option(prompt="Delete the table and every user's data?")
def delete_table(table_name: str, region: str | None, endpoint_url: str | None) -> None:
    """Delete the to-do table."""

    async def _delete() -> None:
        async with Table(table_name, region=region, endpoint_url=endpoint_url) as table:
            await table.delete_table()

    try:
        asyncio.run(_delete())
    except DoneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Table deleted: {table_name}")


@cli.command("delete-user")
@click.argument("user_id")
@_table_options
@click.confirmation_option(prompt="Delete every item stored for this user?")
def delete_user(
    user_id: str, table_name: str, region: str | None, endpoint_url: str | None
) -> None:
    """Delete every item in USER_ID's partition."""

    async def _delete() -> int:
        async with Table(table_name, region=region, endpoint_url=endpoint_url) as table:
            result = await AccountService(table).delete_account(user_id)
            return result.items_deleted

    try:
        deleted = asyncio.run(_delete())
    except DoneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {deleted} item(s) for user {user_id}")


@cli.command("show-user")
@click.argument("user_id")
@_table_options
def show_user(user_id: str, table_name: str, region: str | None, endpoint_url: str | None) -> None:
    """Print everything stored for USER_ID as JSON."""

    async def _load() -> UserData | None:
        async with Table(table_name, region=region, endpoint_url=endpoint_url) as table:
            service = AccountService(table)
            settings = await service.settings.get(user_id)
            if settings is None:
                return None
            return UserData(
                settings=settings,
                categories=await service.categories.list_by_user(user_id),
                tasks=await service.tasks.list_by_user(user_id),
                notifications=await service.notifications.list_by_user(user_id),
            )

    try:
        data = asyncio.run(_load())
    except DoneError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if data is None:
        click.echo(f"No data for user {user_id}", err=True)
        sys.exit(1)
    click.echo(json.dumps(data.to_dict(), indent=2))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
