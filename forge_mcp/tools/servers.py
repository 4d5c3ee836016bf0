"""Server tools for the Forge MCP server.

Read tools for the account, servers, daemons, credentials and regions, plus
confirmed actions for creating, deleting and rebooting servers and their
services.
"""

import logging
from dataclasses import dataclass

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import HttpMethod, call_forge_api, fetch_result
from forge_mcp.registry import ToolRegistrar
from forge_mcp.results import tool_error, tool_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateServerParams(ActionParams):
    provider: str
    credential_id: str = identifier()
    region: str
    size: str
    ubuntu_version: str
    database_type: str
    php_version: str
    server_name: str


@dataclass(frozen=True)
class ServerTarget(ActionParams):
    server_id: str = identifier()
    server_name: str


def _summarize_create_server(p: CreateServerParams) -> str:
    return (
        SummaryBuilder("Create a new server in Laravel Forge?")
        .add("Name", p.server_name)
        .add("Provider", p.provider)
        .add("Credential ID", p.credential_id)
        .add("Region", p.region)
        .add("Size", p.size)
        .add("Ubuntu", p.ubuntu_version)
        .add("Database", p.database_type)
        .add("PHP", p.php_version)
        .note("Provisioning a server may incur charges with the cloud provider.")
        .build()
    )


async def _create_server(p: CreateServerParams, api_key: str):
    payload = {
        "provider": p.provider,
        "credential_id": p.credential_id,
        "region": p.region,
        "size": p.size,
        "php_version": p.php_version,
        "database_type": p.database_type,
        "name": p.server_name,
        "ubuntu_version": p.ubuntu_version,
    }
    return await call_forge_api("/servers", HttpMethod.POST, api_key, payload)


def _server_summary(headline: str):
    def summarize(p: ServerTarget) -> str:
        return SummaryBuilder(headline).named("Server", p.server_name, p.server_id).build()

    return summarize


def _post_server(path: str):
    async def perform(p: ServerTarget, api_key: str):
        return await call_forge_api(f"/servers/{p.server_id}{path}", HttpMethod.POST, api_key)

    return perform


async def _delete_server(p: ServerTarget, api_key: str):
    return await call_forge_api(f"/servers/{p.server_id}", HttpMethod.DELETE, api_key)


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all server tools with the MCP server."""

    # -----------------------------------------------------------------------
    # Read tools
    # -----------------------------------------------------------------------

    @registrar.tool(title="Get User")
    async def get_user():
        """Get the Forge account that owns the API key."""
        return await fetch_result("/user", api_key)

    @registrar.tool(title="List Servers")
    async def list_servers():
        """List all servers in the Laravel Forge account."""
        return await fetch_result("/servers", api_key)

    @registrar.tool(title="Show Server")
    async def show_server(server_id: str | int):
        """Get the details of one server.

        Args:
            server_id: The ID of the server (see list_servers).
        """
        return await fetch_result(f"/servers/{server_id}", api_key)

    @registrar.tool(title="List PHP Versions")
    async def list_php_versions(server_id: str | int):
        """List the PHP versions installed on a server.

        Args:
            server_id: The ID of the server.
        """
        return await fetch_result(f"/servers/{server_id}/php", api_key)

    @registrar.tool(title="List Daemons")
    async def list_daemons(server_id: str | int):
        """List the background daemons configured on a server.

        Args:
            server_id: The ID of the server.
        """
        return await fetch_result(f"/servers/{server_id}/daemons", api_key)

    @registrar.tool(title="Show Daemon")
    async def show_daemon(server_id: str | int, daemon_id: str | int):
        """Get the details of one daemon.

        Args:
            server_id: The ID of the server.
            daemon_id: The ID of the daemon (see list_daemons).
        """
        return await fetch_result(f"/servers/{server_id}/daemons/{daemon_id}", api_key)

    @registrar.tool(title="List Credentials")
    async def list_credentials():
        """List the cloud provider credentials linked to the account.

        Use the returned IDs as credential_id when creating a server.
        """
        return await fetch_result("/credentials", api_key)

    @registrar.tool(title="List Regions")
    async def list_regions():
        """List the regions available per cloud provider."""
        return await fetch_result("/regions", api_key)

    @registrar.tool(title="List Sizes")
    async def list_sizes(provider: str, region: str):
        """List the server sizes offered by a provider in one region.

        Args:
            provider: Provider ID, e.g. ocean2, akamai, vultr2, aws, hetzner.
            region: Region ID as returned by list_regions, e.g. ams2.
        """
        try:
            data = await call_forge_api("/regions", HttpMethod.GET, api_key)
        except Exception as e:
            return tool_error(e)

        regions = (data.get("regions") or {}) if isinstance(data, dict) else {}
        provider_regions = regions.get(provider) or []
        match = next((r for r in provider_regions if r.get("id") == region), None)
        sizes = (match or {}).get("sizes") or []
        return tool_result({"sizes": sizes, "allow_custom": True})

    # -----------------------------------------------------------------------
    # Create server
    # -----------------------------------------------------------------------

    create_server_action = ConfirmedAction(
        "create_server",
        summarize=_summarize_create_server,
        perform=_create_server,
    )

    @registrar.propose(create_server_action, title="Create Server")
    async def confirm_create_server(
        provider: str,
        credential_id: str | int,
        region: str,
        size: str,
        ubuntu_version: str,
        database_type: str,
        php_version: str,
        server_name: str,
    ):
        """Propose creating a new server. Does not create anything.

        Collect the values with list_providers, list_credentials, list_regions,
        list_sizes, list_ubuntu_versions, list_database_types and
        list_static_php_versions. Show the returned summary to the user and,
        only after explicit approval, call create_server with the same values
        and the returned token.

        Args:
            provider: Cloud provider ID (ocean2, akamai, vultr2, aws, hetzner, custom).
            credential_id: ID of the provider credential.
            region: Region ID.
            size: Size ID.
            ubuntu_version: Ubuntu version, e.g. 24.04.
            database_type: Database type ID, e.g. mysql8 or postgres16.
            php_version: PHP version ID, e.g. php84 (not a raw version string).
            server_name: Name for the new server.
        """
        return create_server_action.propose(CreateServerParams(
            provider=provider, credential_id=credential_id, region=region,
            size=size, ubuntu_version=ubuntu_version, database_type=database_type,
            php_version=php_version, server_name=server_name,
        ))

    @registrar.execute(create_server_action, title="Create Server")
    async def create_server(
        provider: str,
        credential_id: str | int,
        region: str,
        size: str,
        ubuntu_version: str,
        database_type: str,
        php_version: str,
        server_name: str,
        token: str,
    ):
        """Create a new server after the user approved confirm_create_server.

        Args:
            provider: Same value as confirmed.
            credential_id: Same value as confirmed.
            region: Same value as confirmed.
            size: Same value as confirmed.
            ubuntu_version: Same value as confirmed.
            database_type: Same value as confirmed.
            php_version: Same value as confirmed.
            server_name: Same value as confirmed.
            token: Token returned by confirm_create_server.
        """
        return await create_server_action.execute(CreateServerParams(
            provider=provider, credential_id=credential_id, region=region,
            size=size, ubuntu_version=ubuntu_version, database_type=database_type,
            php_version=php_version, server_name=server_name,
        ), token, api_key)

    # -----------------------------------------------------------------------
    # Delete server
    # -----------------------------------------------------------------------

    delete_server_action = ConfirmedAction(
        "delete_server",
        summarize=_server_summary("Delete this server and everything on it?"),
        perform=_delete_server,
        destructive=True,
    )

    @registrar.propose(delete_server_action, title="Delete Server")
    async def confirm_delete_server(server_id: str | int, server_name: str):
        """Propose deleting a server. Does not delete anything.

        Show the returned summary to the user and, only after explicit
        approval, call delete_server with the same values and the token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
        """
        return delete_server_action.propose(
            ServerTarget(server_id=server_id, server_name=server_name)
        )

    @registrar.execute(delete_server_action, title="Delete Server")
    async def delete_server(server_id: str | int, server_name: str, token: str):
        """Permanently delete a server after the user approved confirm_delete_server.

        Args:
            server_id: Same value as confirmed.
            server_name: Same value as confirmed.
            token: Token returned by confirm_delete_server.
        """
        return await delete_server_action.execute(
            ServerTarget(server_id=server_id, server_name=server_name), token, api_key
        )

    # -----------------------------------------------------------------------
    # Reboots: the server itself and its services
    # -----------------------------------------------------------------------

    for action_name, title, path, headline in (
        ("reboot_server", "Reboot Server", "/reboot", "Reboot this server?"),
        ("reboot_nginx", "Reboot Nginx", "/nginx/reboot", "Restart Nginx on this server?"),
        ("reboot_mysql", "Reboot MySQL", "/mysql/reboot", "Restart MySQL on this server?"),
        ("reboot_postgres", "Reboot Postgres", "/postgres/reboot", "Restart PostgreSQL on this server?"),
    ):
        _register_reboot(
            registrar,
            api_key,
            ConfirmedAction(
                action_name,
                summarize=_server_summary(headline),
                perform=_post_server(path),
            ),
            title,
        )


def _register_reboot(
    registrar: ToolRegistrar, api_key: str, action: ConfirmedAction, title: str
) -> None:
    # Each reboot needs its own closure over ``action``.

    @registrar.propose(action, title=title)
    async def propose(server_id: str | int, server_name: str):
        """Propose a reboot. Does not reboot anything.

        Show the returned summary to the user and, only after explicit
        approval, call the reboot tool with the same values and the token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
        """
        return action.propose(ServerTarget(server_id=server_id, server_name=server_name))

    @registrar.execute(action, title=title)
    async def execute(server_id: str | int, server_name: str, token: str):
        """Perform the reboot after the user approved the matching confirm tool.

        Args:
            server_id: Same value as confirmed.
            server_name: Same value as confirmed.
            token: Token returned by the confirm tool.
        """
        return await action.execute(
            ServerTarget(server_id=server_id, server_name=server_name), token, api_key
        )
