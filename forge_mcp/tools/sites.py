"""Site tools for the Forge MCP server.

Read tools for sites, their logs, environment and Laravel integrations, plus
confirmed actions that create, delete and reconfigure sites.
"""

import logging
from dataclasses import dataclass

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import HttpMethod, call_forge_api, fetch_result
from forge_mcp.registry import ToolRegistrar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateSiteParams(ActionParams):
    server_id: str = identifier()
    domain: str
    project_type: str
    directory: str | None = None
    isolated: bool | None = None
    wildcard_subdomains: bool | None = None
    php_version: str | None = None
    database: str | None = None
    repository: str | None = None
    branch: str | None = None
    composer: bool | None = None
    install_dependencies: bool | None = None
    enable_quick_deploy: bool | None = None
    enable_auto_deploy: bool | None = None
    provider: str | None = None
    network: tuple[str, ...] | None = identifier(default=None)
    environment: str | None = None
    recipe_id: str | None = identifier(default=None)


@dataclass(frozen=True)
class SiteTarget(ActionParams):
    """A site addressed by ID, with the names shown to the user."""

    server_id: str = identifier()
    server_name: str
    site_id: str = identifier()
    site_name: str


@dataclass(frozen=True)
class SiteRef(ActionParams):
    server_id: str = identifier()
    site_id: str = identifier()


@dataclass(frozen=True)
class SitePhpVersionParams(ActionParams):
    server_id: str = identifier()
    site_id: str = identifier()
    php_version: str


@dataclass(frozen=True)
class SiteAliasesParams(ActionParams):
    server_id: str = identifier()
    site_id: str = identifier()
    aliases: tuple[str, ...]


@dataclass(frozen=True)
class SiteGitParams(ActionParams):
    server_id: str = identifier()
    site_id: str = identifier()
    provider: str
    repository: str
    branch: str
    composer: bool | None = None
    database: str | None = None


def site_path(server_id: str, site_id: str) -> str:
    return f"/servers/{server_id}/sites/{site_id}"


# Optional create_site fields and the Forge payload keys they map to.
_CREATE_SITE_OPTIONAL = (
    ("directory", "directory"),
    ("isolated", "isolated"),
    ("wildcard_subdomains", "wildcard_subdomains"),
    ("php_version", "php_version"),
    ("database", "database"),
    ("repository", "repository"),
    ("branch", "branch"),
    ("composer", "composer"),
    ("install_dependencies", "install_dependencies"),
    ("enable_quick_deploy", "quick_deploy"),
    ("enable_auto_deploy", "auto_deploy"),
    ("provider", "provider"),
    ("network", "network"),
    ("environment", "environment"),
    ("recipe_id", "recipe_id"),
)


def _summarize_create_site(p: CreateSiteParams) -> str:
    summary = (
        SummaryBuilder("Create a new site?")
        .add("Server ID", p.server_id)
        .add("Domain", p.domain)
        .add("Project type", p.project_type)
    )
    for attr, _ in _CREATE_SITE_OPTIONAL:
        if attr == "environment":
            summary.secret("Environment", p.environment)
        else:
            summary.add(attr.replace("_", " ").capitalize(), getattr(p, attr))
    return summary.build()


async def _create_site(p: CreateSiteParams, api_key: str):
    payload = {"domain": p.domain, "project_type": p.project_type}
    for attr, key in _CREATE_SITE_OPTIONAL:
        value = getattr(p, attr)
        if value is None or value == "":
            continue
        payload[key] = list(value) if isinstance(value, tuple) else value
    return await call_forge_api(
        f"/servers/{p.server_id}/sites", HttpMethod.POST, api_key, payload
    )


def _site_target_summary(headline: str):
    def summarize(p: SiteTarget) -> str:
        return (
            SummaryBuilder(headline)
            .named("Server", p.server_name, p.server_id)
            .named("Site", p.site_name, p.site_id)
            .build()
        )

    return summarize


async def _delete_site(p: SiteTarget, api_key: str):
    return await call_forge_api(site_path(p.server_id, p.site_id), HttpMethod.DELETE, api_key)


def _summarize_php_version(p: SitePhpVersionParams) -> str:
    return (
        SummaryBuilder("Change the PHP version of this site?")
        .add("Server ID", p.server_id)
        .add("Site ID", p.site_id)
        .add("New PHP version", p.php_version)
        .build()
    )


async def _change_php_version(p: SitePhpVersionParams, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/php",
        HttpMethod.POST, api_key, {"version": p.php_version},
    )


def _summarize_aliases(p: SiteAliasesParams) -> str:
    return (
        SummaryBuilder("Add domain aliases to this site?")
        .add("Server ID", p.server_id)
        .add("Site ID", p.site_id)
        .add("Aliases", p.aliases)
        .build()
    )


async def _add_aliases(p: SiteAliasesParams, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/aliases",
        HttpMethod.POST, api_key, {"aliases": list(p.aliases)},
    )


def _summarize_clear_log(p: SiteRef) -> str:
    return (
        SummaryBuilder("Clear the log file of this site?")
        .add("Server ID", p.server_id)
        .add("Site ID", p.site_id)
        .note("The current log contents cannot be recovered.")
        .build()
    )


async def _clear_log(p: SiteRef, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/logs", HttpMethod.DELETE, api_key
    )


def _summarize_git(p: SiteGitParams) -> str:
    return (
        SummaryBuilder("Install or update the Git repository of this site?")
        .add("Server ID", p.server_id)
        .add("Site ID", p.site_id)
        .add("Provider", p.provider)
        .add("Repository", p.repository)
        .add("Branch", p.branch)
        .add("Run Composer", p.composer)
        .add("Database", p.database)
        .build()
    )


async def _install_git(p: SiteGitParams, api_key: str):
    payload = {"provider": p.provider, "repository": p.repository, "branch": p.branch}
    if p.composer is not None:
        payload["composer"] = p.composer
    if p.database:
        payload["database"] = p.database
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/git", HttpMethod.POST, api_key, payload
    )


async def _remove_git(p: SiteTarget, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/git", HttpMethod.DELETE, api_key
    )


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all site tools with the MCP server."""

    # -----------------------------------------------------------------------
    # Read tools
    # -----------------------------------------------------------------------

    @registrar.tool(title="List Sites")
    async def list_sites(server_id: str | int):
        """List the sites on a server.

        Args:
            server_id: The ID of the server.
        """
        return await fetch_result(f"/servers/{server_id}/sites", api_key)

    @registrar.tool(title="Show Site")
    async def show_site(server_id: str | int, site_id: str | int):
        """Get the details of one site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site (see list_sites).
        """
        return await fetch_result(site_path(server_id, site_id), api_key)

    @registrar.tool(title="Get Site Log")
    async def get_site_log(server_id: str | int, site_id: str | int):
        """Get the Laravel log of a site."""
        return await fetch_result(f"{site_path(server_id, site_id)}/logs", api_key)

    @registrar.tool(title="Get Site Environment")
    async def get_site_env(server_id: str | int, site_id: str | int):
        """Get the .env file of a site. The content may include secrets."""
        return await fetch_result(f"{site_path(server_id, site_id)}/env", api_key)

    @registrar.tool(title="Get Composer Packages Auth")
    async def get_composer_packages_auth(server_id: str | int, site_id: str | int):
        """Get the Composer package repository credentials configured for a site."""
        return await fetch_result(f"{site_path(server_id, site_id)}/packages", api_key)

    for tool_name, title, integration in (
        ("check_laravel_maintenance_status", "Check Laravel Maintenance Status", "laravel-maintenance"),
        ("check_laravel_scheduler_status", "Check Laravel Scheduler Status", "laravel-scheduler"),
        ("check_pulse_daemon_status", "Check Pulse Daemon Status", "pulse"),
        ("check_inertia_daemon_status", "Check Inertia Daemon Status", "inertia"),
    ):
        _register_integration_check(registrar, api_key, tool_name, title, integration)

    # -----------------------------------------------------------------------
    # Create / delete
    # -----------------------------------------------------------------------

    create_site_action = ConfirmedAction(
        "create_site", summarize=_summarize_create_site, perform=_create_site
    )

    @registrar.propose(create_site_action, title="Create Site")
    async def confirm_create_site(
        server_id: str | int,
        domain: str,
        project_type: str,
        directory: str | None = None,
        isolated: bool | None = None,
        wildcard_subdomains: bool | None = None,
        php_version: str | None = None,
        database: str | None = None,
        repository: str | None = None,
        branch: str | None = None,
        composer: bool | None = None,
        install_dependencies: bool | None = None,
        enable_quick_deploy: bool | None = None,
        enable_auto_deploy: bool | None = None,
        provider: str | None = None,
        network: list[str | int] | None = None,
        environment: str | None = None,
        recipe_id: str | int | None = None,
    ):
        """Propose creating a site on a server. Does not create anything.

        Show the returned summary to the user and, only after explicit
        approval, call create_site with the same values and the token.

        Args:
            server_id: The ID of the server.
            domain: Domain name of the new site.
            project_type: Project type, php or html (see list_project_types).
            directory: Web directory, e.g. /public.
            isolated: Run the site as its own isolated user.
            wildcard_subdomains: Serve every subdomain of the domain.
            php_version: PHP version ID for the site.
            database: Database to create for the site.
            repository: Repository to install.
            branch: Branch to deploy.
            composer: Run Composer after installing the repository.
            install_dependencies: Install project dependencies.
            enable_quick_deploy: Deploy on every push.
            enable_auto_deploy: Enable automatic deployments.
            provider: Git provider, e.g. github.
            network: IDs of servers allowed to reach this site.
            environment: Initial .env content.
            recipe_id: Recipe to run after provisioning.
        """
        return create_site_action.propose(CreateSiteParams(
            server_id=server_id, domain=domain, project_type=project_type,
            directory=directory, isolated=isolated,
            wildcard_subdomains=wildcard_subdomains, php_version=php_version,
            database=database, repository=repository, branch=branch,
            composer=composer, install_dependencies=install_dependencies,
            enable_quick_deploy=enable_quick_deploy,
            enable_auto_deploy=enable_auto_deploy, provider=provider,
            network=network, environment=environment, recipe_id=recipe_id,
        ))

    @registrar.execute(create_site_action, title="Create Site")
    async def create_site(
        server_id: str | int,
        domain: str,
        project_type: str,
        directory: str | None = None,
        isolated: bool | None = None,
        wildcard_subdomains: bool | None = None,
        php_version: str | None = None,
        database: str | None = None,
        repository: str | None = None,
        branch: str | None = None,
        composer: bool | None = None,
        install_dependencies: bool | None = None,
        enable_quick_deploy: bool | None = None,
        enable_auto_deploy: bool | None = None,
        provider: str | None = None,
        network: list[str | int] | None = None,
        environment: str | None = None,
        recipe_id: str | int | None = None,
        *,
        token: str,
    ):
        """Create the site after the user approved confirm_create_site.

        Every value must match the confirmed one; omitted optional values
        must also have been omitted when confirming.

        Args:
            token: Token returned by confirm_create_site.
        """
        return await create_site_action.execute(CreateSiteParams(
            server_id=server_id, domain=domain, project_type=project_type,
            directory=directory, isolated=isolated,
            wildcard_subdomains=wildcard_subdomains, php_version=php_version,
            database=database, repository=repository, branch=branch,
            composer=composer, install_dependencies=install_dependencies,
            enable_quick_deploy=enable_quick_deploy,
            enable_auto_deploy=enable_auto_deploy, provider=provider,
            network=network, environment=environment, recipe_id=recipe_id,
        ), token, api_key)

    delete_site_action = ConfirmedAction(
        "delete_site",
        summarize=_site_target_summary("Delete this site and its files?"),
        perform=_delete_site,
        destructive=True,
    )

    @registrar.propose(delete_site_action, title="Delete Site")
    async def confirm_delete_site(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str
    ):
        """Propose deleting a site. Does not delete anything.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_id: The ID of the site.
            site_name: The domain of the site, shown to the user.
        """
        return delete_site_action.propose(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ))

    @registrar.execute(delete_site_action, title="Delete Site")
    async def delete_site(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str, token: str
    ):
        """Permanently delete a site after the user approved confirm_delete_site."""
        return await delete_site_action.execute(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ), token, api_key)

    # -----------------------------------------------------------------------
    # Configuration changes
    # -----------------------------------------------------------------------

    php_action = ConfirmedAction(
        "change_site_php_version",
        summarize=_summarize_php_version,
        perform=_change_php_version,
    )

    @registrar.propose(php_action, title="Change Site PHP Version")
    async def confirm_change_site_php_version(
        server_id: str | int, site_id: str | int, php_version: str
    ):
        """Propose switching a site to another installed PHP version.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            php_version: PHP version ID installed on the server (see list_php_versions).
        """
        return php_action.propose(SitePhpVersionParams(
            server_id=server_id, site_id=site_id, php_version=php_version,
        ))

    @registrar.execute(php_action, title="Change Site PHP Version")
    async def change_site_php_version(
        server_id: str | int, site_id: str | int, php_version: str, token: str
    ):
        """Switch the site's PHP version after approval of the confirm tool."""
        return await php_action.execute(SitePhpVersionParams(
            server_id=server_id, site_id=site_id, php_version=php_version,
        ), token, api_key)

    aliases_action = ConfirmedAction(
        "add_site_aliases", summarize=_summarize_aliases, perform=_add_aliases
    )

    @registrar.propose(aliases_action, title="Add Site Aliases")
    async def confirm_add_site_aliases(
        server_id: str | int, site_id: str | int, aliases: list[str]
    ):
        """Propose adding domain aliases to a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            aliases: Additional domains; order matters when confirming.
        """
        return aliases_action.propose(SiteAliasesParams(
            server_id=server_id, site_id=site_id, aliases=aliases,
        ))

    @registrar.execute(aliases_action, title="Add Site Aliases")
    async def add_site_aliases(
        server_id: str | int, site_id: str | int, aliases: list[str], token: str
    ):
        """Add the aliases after approval of confirm_add_site_aliases."""
        return await aliases_action.execute(SiteAliasesParams(
            server_id=server_id, site_id=site_id, aliases=aliases,
        ), token, api_key)

    clear_log_action = ConfirmedAction(
        "clear_site_log", summarize=_summarize_clear_log, perform=_clear_log
    )

    @registrar.propose(clear_log_action, title="Clear Site Log")
    async def confirm_clear_site_log(server_id: str | int, site_id: str | int):
        """Propose clearing the log file of a site."""
        return clear_log_action.propose(SiteRef(server_id=server_id, site_id=site_id))

    @registrar.execute(clear_log_action, title="Clear Site Log")
    async def clear_site_log(server_id: str | int, site_id: str | int, token: str):
        """Clear the site log after approval of confirm_clear_site_log."""
        return await clear_log_action.execute(
            SiteRef(server_id=server_id, site_id=site_id), token, api_key
        )

    # -----------------------------------------------------------------------
    # Git repository
    # -----------------------------------------------------------------------

    git_action = ConfirmedAction(
        "install_or_update_site_git", summarize=_summarize_git, perform=_install_git
    )

    @registrar.propose(git_action, title="Install or Update Site Git")
    async def confirm_install_or_update_site_git(
        server_id: str | int,
        site_id: str | int,
        provider: str,
        repository: str,
        branch: str,
        composer: bool | None = None,
        database: str | None = None,
    ):
        """Propose installing or replacing the Git repository of a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
            provider: Git provider, e.g. github, gitlab, bitbucket, custom.
            repository: Repository, e.g. user/project.
            branch: Branch to deploy.
            composer: Run composer install after cloning.
            database: Database name to use.
        """
        return git_action.propose(SiteGitParams(
            server_id=server_id, site_id=site_id, provider=provider,
            repository=repository, branch=branch, composer=composer, database=database,
        ))

    @registrar.execute(git_action, title="Install or Update Site Git")
    async def install_or_update_site_git(
        server_id: str | int,
        site_id: str | int,
        provider: str,
        repository: str,
        branch: str,
        composer: bool | None = None,
        database: str | None = None,
        *,
        token: str,
    ):
        """Install the repository after approval of confirm_install_or_update_site_git."""
        return await git_action.execute(SiteGitParams(
            server_id=server_id, site_id=site_id, provider=provider,
            repository=repository, branch=branch, composer=composer, database=database,
        ), token, api_key)

    remove_git_action = ConfirmedAction(
        "remove_site_git",
        summarize=_site_target_summary("Remove the Git repository from this site?"),
        perform=_remove_git,
        destructive=True,
    )

    @registrar.propose(remove_git_action, title="Remove Site Git")
    async def confirm_remove_site_git(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str
    ):
        """Propose detaching the Git repository from a site."""
        return remove_git_action.propose(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ))

    @registrar.execute(remove_git_action, title="Remove Site Git")
    async def remove_site_git(
        server_id: str | int, server_name: str, site_id: str | int, site_name: str, token: str
    ):
        """Remove the repository after approval of confirm_remove_site_git."""
        return await remove_git_action.execute(SiteTarget(
            server_id=server_id, server_name=server_name,
            site_id=site_id, site_name=site_name,
        ), token, api_key)


def _register_integration_check(
    registrar: ToolRegistrar, api_key: str, name: str, title: str, integration: str
) -> None:
    @registrar.tool(
        title=title,
        name=name,
        description=f"Check whether the {integration} integration is enabled for a site.",
    )
    async def check_integration(server_id: str | int, site_id: str | int):
        """Check whether a Laravel integration is enabled for a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
        """
        return await fetch_result(
            f"{site_path(server_id, site_id)}/integrations/{integration}", api_key
        )
