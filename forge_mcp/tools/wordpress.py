"""WordPress tools for the Forge MCP server.

Installing WordPress is a multi-step flow. Forge refuses to install an
application on a site that already has one, and a freshly created site is
marked as having one shortly after creation. The install request is therefore
sent right after the site is created and retried briefly while Forge reports
"application installed". The installation itself then finishes
asynchronously and is polled for.
"""

import asyncio
import logging
from dataclasses import dataclass

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import ForgeError, HttpMethod, call_forge_api
from forge_mcp.polling import poll_until, retry_while
from forge_mcp.registry import ToolRegistrar
from forge_mcp.tools.sites import SiteTarget, site_path

logger = logging.getLogger(__name__)

DELETE_SETTLE_SECONDS = 5.0
INSTALL_RETRY_ATTEMPTS = 10
INSTALL_RETRY_DELAY = 0.5
READY_POLL_ATTEMPTS = 60
READY_POLL_DELAY = 3.0


@dataclass(frozen=True)
class InstallWordPressParams(ActionParams):
    server_id: str = identifier()
    server_name: str
    site_name: str
    database: str
    user_id: int
    site_id: str | None = identifier(default=None)
    create_fresh_site: bool = True
    isolated: bool | None = None
    php_version: str | None = None

    def problems(self) -> list[str]:
        if not self.create_fresh_site and not self.site_id:
            return ["site_id is required when create_fresh_site is false"]
        return []


def _summarize_install(p: InstallWordPressParams) -> str:
    summary = (
        SummaryBuilder("Install WordPress?")
        .named("Server", p.server_name, p.server_id)
        .add("Domain", p.site_name)
        .add("Database", p.database)
        .add("Database user ID", p.user_id)
        .add("Isolated", p.isolated)
        .add("PHP version", p.php_version)
    )
    if p.create_fresh_site:
        if p.site_id:
            summary.add("Existing site ID", p.site_id)
            summary.note("The existing site and its files will be DELETED and recreated.")
        summary.note("A new PHP site will be created for the domain.")
    else:
        summary.add("Site ID", p.site_id)
        summary.note("WordPress will be installed on the existing site.")
    return summary.build()


def _site_ready(response) -> bool:
    site = response.get("site") if isinstance(response, dict) else None
    return bool(site) and site.get("status") == "installed" and site.get("app") == "wordpress"


async def _recreate_site(p: InstallWordPressParams, api_key: str) -> str:
    if p.site_id:
        try:
            await call_forge_api(site_path(p.server_id, p.site_id), HttpMethod.DELETE, api_key)
        except ForgeError as exc:
            # The site may already be gone.
            logger.info("Ignoring failure to delete site %s: %s", p.site_id, exc)
        else:
            await asyncio.sleep(DELETE_SETTLE_SECONDS)

    payload: dict = {"domain": p.site_name, "project_type": "php"}
    if p.isolated is not None:
        payload["isolated"] = p.isolated
    if p.php_version:
        payload["php_version"] = p.php_version
    created = await call_forge_api(
        f"/servers/{p.server_id}/sites", HttpMethod.POST, api_key, payload
    )
    try:
        return str(created["site"]["id"])
    except (KeyError, TypeError) as exc:
        raise ForgeError("Site creation returned no site ID") from exc


async def install_wordpress_site(p: InstallWordPressParams, api_key: str) -> dict:
    """Run the full install flow and report whether WordPress is ready."""
    if p.create_fresh_site:
        site_id = await _recreate_site(p, api_key)
    else:
        site_id = p.site_id

    endpoint = f"{site_path(p.server_id, site_id)}/wordpress"
    try:
        data = await retry_while(
            lambda: call_forge_api(
                endpoint, HttpMethod.POST, api_key,
                {"database": p.database, "user": p.user_id},
            ),
            lambda exc: "application installed" in str(exc),
            max_attempts=INSTALL_RETRY_ATTEMPTS,
            delay=INSTALL_RETRY_DELAY,
        )
    except ForgeError as exc:
        raise ForgeError(f"WordPress installation failed: {exc}") from exc

    ready = await poll_until(
        lambda: call_forge_api(site_path(p.server_id, site_id), HttpMethod.GET, api_key),
        _site_ready,
        max_attempts=READY_POLL_ATTEMPTS,
        delay=READY_POLL_DELAY,
    )
    if ready is None:
        return {
            "status": "installing",
            "site_id": site_id,
            "message": (
                f"WordPress installation started on {p.site_name} (ID: {site_id}) and is "
                "still in progress. Visit the site URL to finish the setup wizard once it completes."
            ),
            "data": data,
        }
    return {
        "status": "installed",
        "site_id": site_id,
        "message": (
            f"WordPress installed on {p.site_name} (ID: {site_id}). "
            "Visit the site URL to finish the setup wizard."
        ),
        "site": ready["site"],
        "data": data,
    }


async def _uninstall(p: SiteTarget, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/wordpress", HttpMethod.DELETE, api_key
    )


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register the WordPress tools with the MCP server."""

    install_action = ConfirmedAction(
        "install_wordpress", summarize=_summarize_install, perform=install_wordpress_site
    )

    @registrar.propose(install_action, title="Install WordPress")
    async def confirm_install_wordpress(
        server_id: str | int,
        server_name: str,
        site_name: str,
        database: str,
        user_id: int,
        site_id: str | int | None = None,
        create_fresh_site: bool = True,
        isolated: bool | None = None,
        php_version: str | None = None,
    ):
        """Propose installing WordPress on a site. Installs nothing.

        With create_fresh_site (the default), an existing site given by
        site_id is deleted first and a new PHP site is created for
        site_name. Show the returned summary to the user and, only after
        explicit approval, call install_wordpress with the same values and the
        token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_name: Domain of the WordPress site.
            database: Name of the database WordPress will use.
            user_id: Numeric ID of the database user (see list_database_users).
            site_id: Existing site to replace, or to install on.
            create_fresh_site: Delete and recreate the site before installing.
            isolated: Run the new site as an isolated user.
            php_version: PHP version ID for the new site.
        """
        return install_action.propose(InstallWordPressParams(
            server_id=server_id, server_name=server_name, site_name=site_name,
            database=database, user_id=user_id, site_id=site_id,
            create_fresh_site=create_fresh_site, isolated=isolated,
            php_version=php_version,
        ))

    @registrar.execute(install_action, title="Install WordPress")
    async def install_wordpress(
        server_id: str | int,
        server_name: str,
        site_name: str,
        database: str,
        user_id: int,
        site_id: str | int | None = None,
        create_fresh_site: bool = True,
        isolated: bool | None = None,
        php_version: str | None = None,
        *,
        token: str,
    ):
        """Install WordPress after approval of confirm_install_wordpress.

        Waits up to a few minutes for Forge to finish; the result status is
        "installed" or, if Forge is still working, "installing".

        Args:
            token: Token returned by confirm_install_wordpress.
        """
        return await install_action.execute(InstallWordPressParams(
            server_id=server_id, server_name=server_name, site_name=site_name,
            database=database, user_id=user_id, site_id=site_id,
            create_fresh_site=create_fresh_site, isolated=isolated,
            php_version=php_version,
        ), token, api_key)

    uninstall_action = ConfirmedAction(
        "uninstall_wordpress",
        summarize=lambda p: (
            SummaryBuilder("Uninstall WordPress from this site?")
            .named("Server", p.server_name, p.server_id)
            .named("Site", p.site_name, p.site_id)
            .build()
        ),
        perform=_uninstall,
        destructive=True,
    )

    @registrar.propose(uninstall_action, title="Uninstall WordPress")
    async def confirm_uninstall_wordpress(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str
    ):
        """Propose removing WordPress from a site. Removes nothing.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_id: The ID of the site.
            site_name: The domain of the site, shown to the user.
        """
        return uninstall_action.propose(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ))

    @registrar.execute(uninstall_action, title="Uninstall WordPress")
    async def uninstall_wordpress(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str, token: str
    ):
        """Remove WordPress after approval of confirm_uninstall_wordpress."""
        return await uninstall_action.execute(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ), token, api_key)
