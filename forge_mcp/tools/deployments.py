"""Deployment tools for the Forge MCP server."""

import logging

from forge_mcp.actions import ConfirmedAction, SummaryBuilder
from forge_mcp.forge_api import HttpMethod, call_forge_api, fetch_result
from forge_mcp.registry import ToolRegistrar
from forge_mcp.tools.sites import SiteTarget, site_path

logger = logging.getLogger(__name__)


def _deployment_summary(headline: str, note: str | None = None):
    def summarize(p: SiteTarget) -> str:
        summary = (
            SummaryBuilder(headline)
            .named("Server", p.server_name, p.server_id)
            .named("Site", p.site_name, p.site_id)
        )
        if note:
            summary.note(note)
        return summary.build()

    return summarize


def _deployment_call(method: HttpMethod, suffix: str):
    async def perform(p: SiteTarget, api_key: str):
        return await call_forge_api(
            f"{site_path(p.server_id, p.site_id)}/deployment{suffix}", method, api_key
        )

    return perform


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all deployment tools with the MCP server."""

    @registrar.tool(title="List Deployments")
    async def list_deployments(server_id: str | int, site_id: str | int):
        """List the deployment history of a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
        """
        return await fetch_result(f"{site_path(server_id, site_id)}/deployment-history", api_key)

    @registrar.tool(title="Get Deployment")
    async def get_deployment(server_id: str | int, site_id: str | int, deployment_id: str | int):
        """Get one deployment from a site's history.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            deployment_id: The ID of the deployment (see list_deployments).
        """
        return await fetch_result(
            f"{site_path(server_id, site_id)}/deployment-history/{deployment_id}", api_key
        )

    @registrar.tool(title="Get Deployment Output")
    async def get_deployment_output(
        server_id: str | int, site_id: str | int, deployment_id: str | int
    ):
        """Get the output of one deployment from a site's history.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            deployment_id: The ID of the deployment.
        """
        return await fetch_result(
            f"{site_path(server_id, site_id)}/deployment-history/{deployment_id}/output",
            api_key,
        )

    @registrar.tool(title="Get Deployment Log")
    async def get_deployment_log(server_id: str | int, site_id: str | int):
        """Get the log of the latest deployment of a site."""
        return await fetch_result(f"{site_path(server_id, site_id)}/deployment/log", api_key)

    actions = (
        (
            ConfirmedAction(
                "deploy_now",
                summarize=_deployment_summary(
                    "Deploy this site now?",
                    "The site's deployment script will run immediately.",
                ),
                perform=_deployment_call(HttpMethod.POST, "/deploy"),
            ),
            "Deploy Now",
        ),
        (
            ConfirmedAction(
                "enable_quick_deployment",
                summarize=_deployment_summary(
                    "Enable quick deployment for this site?",
                    "Every push to the deployed branch will trigger a deployment.",
                ),
                perform=_deployment_call(HttpMethod.POST, ""),
            ),
            "Enable Quick Deployment",
        ),
        (
            ConfirmedAction(
                "disable_quick_deployment",
                summarize=_deployment_summary("Disable quick deployment for this site?"),
                perform=_deployment_call(HttpMethod.DELETE, ""),
            ),
            "Disable Quick Deployment",
        ),
    )
    for action, title in actions:
        _register_site_pair(registrar, api_key, action, title)


def _register_site_pair(
    registrar: ToolRegistrar, api_key: str, action: ConfirmedAction, title: str
) -> None:
    @registrar.propose(action, title=title)
    async def propose(server_id: str | int, server_name: str, site_id: str | int, site_name: str):
        """Propose a deployment change for a site. Does not change anything.

        Show the returned summary to the user and, only after explicit
        approval, call the matching action tool with the same values and the
        token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_id: The ID of the site.
            site_name: The domain of the site, shown to the user.
        """
        return action.propose(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ))

    @registrar.execute(action, title=title)
    async def execute(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str, token: str
    ):
        """Apply the approved deployment change.

        Args:
            server_id: Same value as confirmed.
            server_name: Same value as confirmed.
            site_id: Same value as confirmed.
            site_name: Same value as confirmed.
            token: Token returned by the confirm tool.
        """
        return await action.execute(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ), token, api_key)
