"""Site command tools for the Forge MCP server.

Forge runs site commands asynchronously: the POST only queues the command.
``execute_site_command`` polls the command until it reaches a final status or
the attempt budget runs out.
"""

import logging
from dataclasses import dataclass

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import ForgeError, HttpMethod, call_forge_api, fetch_result
from forge_mcp.polling import poll_until
from forge_mcp.registry import ToolRegistrar
from forge_mcp.tools.sites import site_path

logger = logging.getLogger(__name__)

FINAL_COMMAND_STATUSES = frozenset({"finished", "failed", "error"})
COMMAND_POLL_ATTEMPTS = 30
COMMAND_POLL_DELAY = 2.0


@dataclass(frozen=True)
class SiteCommandParams(ActionParams):
    server_id: str = identifier()
    site_id: str = identifier()
    command: str
    wait_for_completion: bool = True


def _command_status(response) -> str | None:
    if not isinstance(response, dict):
        return None
    return (response.get("command") or {}).get("status")


def _summarize_command(p: SiteCommandParams) -> str:
    return (
        SummaryBuilder("Run this shell command on the site?")
        .add("Server ID", p.server_id)
        .add("Site ID", p.site_id)
        .add("Command", p.command)
        .add("Wait for completion", p.wait_for_completion)
        .note("The command has full access to the site's files.")
        .build()
    )


async def run_site_command(p: SiteCommandParams, api_key: str) -> dict:
    """Queue ``p.command`` and, if requested, wait for its final status."""
    base = f"{site_path(p.server_id, p.site_id)}/commands"
    started = await call_forge_api(base, HttpMethod.POST, api_key, {"command": p.command})

    command = started.get("command") if isinstance(started, dict) else None
    command_id = (command or {}).get("id")
    if not command_id:
        raise ForgeError("Failed to execute command: no command ID returned")

    note = "Use get_site_command to check the status and retrieve the output."
    if not p.wait_for_completion:
        return {"command_id": command_id, "status": command.get("status"), "note": note}

    finished = await poll_until(
        lambda: call_forge_api(f"{base}/{command_id}", HttpMethod.GET, api_key),
        lambda response: _command_status(response) in FINAL_COMMAND_STATUSES,
        max_attempts=COMMAND_POLL_ATTEMPTS,
        delay=COMMAND_POLL_DELAY,
    )
    if finished is None:
        logger.info("Site command %s still running after polling", command_id)
        return {
            "command_id": command_id,
            "status": "in_progress",
            "message": "Command execution timed out. The command may still be running.",
            "note": note,
        }

    status = _command_status(finished)
    return {
        "command_id": command_id,
        "status": status,
        "succeeded": status == "finished",
        "output": finished.get("output"),
    }


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all site command tools with the MCP server."""

    @registrar.tool(title="List Site Commands")
    async def list_site_commands(server_id: str | int, site_id: str | int):
        """List the command history of a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
        """
        return await fetch_result(f"{site_path(server_id, site_id)}/commands", api_key)

    @registrar.tool(title="Get Site Command")
    async def get_site_command(server_id: str | int, site_id: str | int, command_id: str | int):
        """Get the status and output of one site command.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            command_id: The ID returned by execute_site_command or list_site_commands.
        """
        return await fetch_result(f"{site_path(server_id, site_id)}/commands/{command_id}", api_key)

    command_action = ConfirmedAction(
        "execute_site_command",
        summarize=_summarize_command,
        perform=run_site_command,
        destructive=True,
    )

    @registrar.propose(command_action, title="Execute Site Command")
    async def confirm_execute_site_command(
        server_id: str | int,
        site_id: str | int,
        command: str,
        wait_for_completion: bool = True,
    ):
        """Propose running a shell command in a site's directory. Runs nothing.

        Shell commands can delete or overwrite files. Show the returned summary
        to the user and, only after explicit approval, call
        execute_site_command with the same values and the token.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            command: Shell command, run from the site directory.
            wait_for_completion: Poll until the command finishes (default) or
                return right after queueing it.
        """
        return command_action.propose(SiteCommandParams(
            server_id=server_id, site_id=site_id,
            command=command, wait_for_completion=wait_for_completion,
        ))

    @registrar.execute(command_action, title="Execute Site Command")
    async def execute_site_command(
        server_id: str | int,
        site_id: str | int,
        command: str,
        wait_for_completion: bool = True,
        *,
        token: str,
    ):
        """Run the command after approval of confirm_execute_site_command.

        Args:
            token: Token returned by confirm_execute_site_command.
        """
        return await command_action.execute(SiteCommandParams(
            server_id=server_id, site_id=site_id,
            command=command, wait_for_completion=wait_for_completion,
        ), token, api_key)
