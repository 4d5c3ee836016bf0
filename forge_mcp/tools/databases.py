"""Database and database user tools for the Forge MCP server.

Passwords are part of the confirmed parameters, so they are compared on
execution, but summaries only say that one was provided.
"""

import logging
from dataclasses import dataclass

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import HttpMethod, call_forge_api, fetch_result
from forge_mcp.registry import ToolRegistrar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateDatabaseParams(ActionParams):
    server_id: str = identifier()
    server_name: str
    name: str
    user: str | None = None
    password: str | None = None

    def problems(self) -> list[str]:
        if self.user and not self.password:
            return ["password is required when user is provided"]
        return []


@dataclass(frozen=True)
class DatabaseTarget(ActionParams):
    server_id: str = identifier()
    server_name: str
    database_id: str = identifier()
    database_name: str | None = None


@dataclass(frozen=True)
class CreateDatabaseUserParams(ActionParams):
    server_id: str = identifier()
    server_name: str
    name: str
    password: str
    databases: tuple[str, ...] = identifier()


@dataclass(frozen=True)
class DatabaseUserTarget(ActionParams):
    server_id: str = identifier()
    server_name: str
    user_id: str = identifier()
    user_name: str


def _as_forge_id(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def _summarize_create_database(p: CreateDatabaseParams) -> str:
    return (
        SummaryBuilder("Create a new database?")
        .named("Server", p.server_name, p.server_id)
        .add("Database", p.name)
        .add("User", p.user)
        .secret("Password", p.password)
        .build()
    )


async def _create_database(p: CreateDatabaseParams, api_key: str):
    payload = {"name": p.name}
    if p.user:
        payload["user"] = p.user
        payload["password"] = p.password
    return await call_forge_api(
        f"/servers/{p.server_id}/databases", HttpMethod.POST, api_key, payload
    )


def _summarize_database(headline: str):
    def summarize(p: DatabaseTarget) -> str:
        summary = SummaryBuilder(headline).named("Server", p.server_name, p.server_id)
        if p.database_name:
            summary.named("Database", p.database_name, p.database_id)
        else:
            summary.add("Database ID", p.database_id)
        return summary.build()

    return summarize


async def _sync_database(p: DatabaseTarget, api_key: str):
    return await call_forge_api(
        f"/servers/{p.server_id}/databases/{p.database_id}/sync", HttpMethod.POST, api_key
    )


async def _delete_database(p: DatabaseTarget, api_key: str):
    return await call_forge_api(
        f"/servers/{p.server_id}/databases/{p.database_id}", HttpMethod.DELETE, api_key
    )


def _summarize_create_user(p: CreateDatabaseUserParams) -> str:
    return (
        SummaryBuilder("Create a new database user?")
        .named("Server", p.server_name, p.server_id)
        .add("Username", p.name)
        .secret("Password", p.password)
        .add("Database IDs", p.databases)
        .build()
    )


async def _create_user(p: CreateDatabaseUserParams, api_key: str):
    payload = {
        "name": p.name,
        "password": p.password,
        "databases": [_as_forge_id(db) for db in p.databases],
    }
    return await call_forge_api(
        f"/servers/{p.server_id}/database-users", HttpMethod.POST, api_key, payload
    )


def _summarize_delete_user(p: DatabaseUserTarget) -> str:
    return (
        SummaryBuilder("Delete this database user?")
        .named("Server", p.server_name, p.server_id)
        .named("User", p.user_name, p.user_id)
        .build()
    )


async def _delete_user(p: DatabaseUserTarget, api_key: str):
    return await call_forge_api(
        f"/servers/{p.server_id}/database-users/{p.user_id}", HttpMethod.DELETE, api_key
    )


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all database tools with the MCP server."""

    # -----------------------------------------------------------------------
    # Read tools
    # -----------------------------------------------------------------------

    @registrar.tool(title="List Databases")
    async def list_databases(server_id: str | int):
        """List the databases on a server.

        Args:
            server_id: The ID of the server.
        """
        return await fetch_result(f"/servers/{server_id}/databases", api_key)

    @registrar.tool(title="Get Database")
    async def get_database(server_id: str | int, database_id: str | int):
        """Get one database on a server.

        Args:
            server_id: The ID of the server.
            database_id: The ID of the database (see list_databases).
        """
        return await fetch_result(f"/servers/{server_id}/databases/{database_id}", api_key)

    @registrar.tool(title="List Database Users")
    async def list_database_users(server_id: str | int):
        """List the database users on a server.

        Args:
            server_id: The ID of the server.
        """
        return await fetch_result(f"/servers/{server_id}/database-users", api_key)

    @registrar.tool(title="Get Database User")
    async def get_database_user(server_id: str | int, user_id: str | int):
        """Get one database user on a server.

        Args:
            server_id: The ID of the server.
            user_id: The ID of the database user (see list_database_users).
        """
        return await fetch_result(f"/servers/{server_id}/database-users/{user_id}", api_key)

    # -----------------------------------------------------------------------
    # Databases
    # -----------------------------------------------------------------------

    create_db_action = ConfirmedAction(
        "create_database", summarize=_summarize_create_database, perform=_create_database
    )

    @registrar.propose(create_db_action, title="Create Database")
    async def confirm_create_database(
        server_id: str | int,
        server_name: str,
        name: str,
        user: str | None = None,
        password: str | None = None,
    ):
        """Propose creating a database, optionally with a user. Creates nothing.

        Show the returned summary to the user and, only after explicit
        approval, call create_database with the same values and the token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            name: Name of the new database.
            user: Name of a database user to create alongside it.
            password: Password for that user; required when user is given.
        """
        return create_db_action.propose(CreateDatabaseParams(
            server_id=server_id, server_name=server_name,
            name=name, user=user, password=password,
        ))

    @registrar.execute(create_db_action, title="Create Database")
    async def create_database(
        server_id: str | int,
        server_name: str,
        name: str,
        user: str | None = None,
        password: str | None = None,
        *,
        token: str,
    ):
        """Create the database after the user approved confirm_create_database.

        Args:
            token: Token returned by confirm_create_database.
        """
        return await create_db_action.execute(CreateDatabaseParams(
            server_id=server_id, server_name=server_name,
            name=name, user=user, password=password,
        ), token, api_key)

    sync_action = ConfirmedAction(
        "sync_database",
        summarize=_summarize_database("Sync this database with Forge?"),
        perform=_sync_database,
    )

    @registrar.propose(sync_action, title="Sync Database")
    async def confirm_sync_database(
        server_id: str | int, server_name: str, database_id: str | int
    ):
        """Propose syncing Forge's database list with the server.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            database_id: The ID of the database.
        """
        return sync_action.propose(DatabaseTarget(
            server_id=server_id, server_name=server_name, database_id=database_id,
        ))

    @registrar.execute(sync_action, title="Sync Database")
    async def sync_database(
        server_id: str | int, server_name: str, database_id: str | int, token: str
    ):
        """Sync the database after approval of confirm_sync_database."""
        return await sync_action.execute(DatabaseTarget(
            server_id=server_id, server_name=server_name, database_id=database_id,
        ), token, api_key)

    delete_db_action = ConfirmedAction(
        "delete_database",
        summarize=_summarize_database("Delete this database and all of its data?"),
        perform=_delete_database,
        destructive=True,
    )

    @registrar.propose(delete_db_action, title="Delete Database")
    async def confirm_delete_database(
        server_id: str | int, server_name: str, database_id: str | int, database_name: str
    ):
        """Propose deleting a database. Deletes nothing.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            database_id: The ID of the database.
            database_name: The name of the database, shown to the user.
        """
        return delete_db_action.propose(DatabaseTarget(
            server_id=server_id, server_name=server_name,
            database_id=database_id, database_name=database_name,
        ))

    @registrar.execute(delete_db_action, title="Delete Database")
    async def delete_database(
        server_id: str | int,
        server_name: str,
        database_id: str | int,
        database_name: str,
        token: str,
    ):
        """Permanently delete the database after approval of confirm_delete_database."""
        return await delete_db_action.execute(DatabaseTarget(
            server_id=server_id, server_name=server_name,
            database_id=database_id, database_name=database_name,
        ), token, api_key)

    # -----------------------------------------------------------------------
    # Database users
    # -----------------------------------------------------------------------

    create_user_action = ConfirmedAction(
        "create_database_user", summarize=_summarize_create_user, perform=_create_user
    )

    @registrar.propose(create_user_action, title="Create Database User")
    async def confirm_create_database_user(
        server_id: str | int,
        server_name: str,
        name: str,
        password: str,
        databases: list[str | int],
    ):
        """Propose creating a database user with access to some databases.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            name: Username.
            password: Password for the user. Never shown in the summary.
            databases: IDs of the databases the user may access, in order.
        """
        return create_user_action.propose(CreateDatabaseUserParams(
            server_id=server_id, server_name=server_name,
            name=name, password=password, databases=databases,
        ))

    @registrar.execute(create_user_action, title="Create Database User")
    async def create_database_user(
        server_id: str | int,
        server_name: str,
        name: str,
        password: str,
        databases: list[str | int],
        token: str,
    ):
        """Create the user after approval of confirm_create_database_user."""
        return await create_user_action.execute(CreateDatabaseUserParams(
            server_id=server_id, server_name=server_name,
            name=name, password=password, databases=databases,
        ), token, api_key)

    delete_user_action = ConfirmedAction(
        "delete_database_user",
        summarize=_summarize_delete_user,
        perform=_delete_user,
        destructive=True,
    )

    @registrar.propose(delete_user_action, title="Delete Database User")
    async def confirm_delete_database_user(
        server_id: str | int, server_name: str, user_id: str | int, user_name: str
    ):
        """Propose deleting a database user. Deletes nothing.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            user_id: The ID of the database user.
            user_name: The name of the database user, shown to the user.
        """
        return delete_user_action.propose(DatabaseUserTarget(
            server_id=server_id, server_name=server_name,
            user_id=user_id, user_name=user_name,
        ))

    @registrar.execute(delete_user_action, title="Delete Database User")
    async def delete_database_user(
        server_id: str | int,
        server_name: str,
        user_id: str | int,
        user_name: str,
        token: str,
    ):
        """Delete the user after approval of confirm_delete_database_user."""
        return await delete_user_action.execute(DatabaseUserTarget(
            server_id=server_id, server_name=server_name,
            user_id=user_id, user_name=user_name,
        ), token, api_key)
