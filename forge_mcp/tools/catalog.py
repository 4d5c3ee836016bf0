"""Static catalogs of values accepted when creating servers and sites.

These lists do not come from the Forge API. They mirror the values Forge
documents and never require a network call.
"""

from forge_mcp.registry import ToolRegistrar
from forge_mcp.results import tool_result

PROVIDERS = [
    {"id": "ocean2", "name": "Digital Ocean"},
    {"id": "akamai", "name": "Linode (Akamai)"},
    {"id": "vultr2", "name": "Vultr"},
    {"id": "aws", "name": "AWS"},
    {"id": "hetzner", "name": "Hetzner"},
    {"id": "custom", "name": "Custom"},
]

UBUNTU_VERSIONS = [
    {"id": "24.04", "name": "Ubuntu 24.04 LTS (Noble Numbat)", "default": True},
    {"id": "22.04", "name": "Ubuntu 22.04 LTS (Jammy Jellyfish)", "default": False},
    {"id": "20.04", "name": "Ubuntu 20.04 LTS (Focal Fossa)", "default": False},
]

DATABASE_TYPES = [
    {"id": "mysql8", "name": "MySQL 8"},
    {"id": "mariadb106", "name": "MariaDB 10.6"},
    {"id": "mariadb1011", "name": "MariaDB 10.11"},
    {"id": "mariadb114", "name": "MariaDB 11.4"},
    {"id": "postgres", "name": "PostgreSQL (latest)"},
    {"id": "postgres13", "name": "PostgreSQL 13"},
    {"id": "postgres14", "name": "PostgreSQL 14"},
    {"id": "postgres15", "name": "PostgreSQL 15"},
    {"id": "postgres16", "name": "PostgreSQL 16"},
    {"id": "postgres17", "name": "PostgreSQL 17"},
]

PHP_VERSIONS = [
    {"id": "php84", "name": "PHP 8.4", "default": True},
    {"id": "php83", "name": "PHP 8.3", "default": False},
    {"id": "php82", "name": "PHP 8.2", "default": False},
    {"id": "php81", "name": "PHP 8.1", "default": False},
    {"id": "php80", "name": "PHP 8.0", "default": False},
    {"id": "php74", "name": "PHP 7.4", "default": False},
    {"id": "php73", "name": "PHP 7.3", "default": False},
    {"id": "php72", "name": "PHP 7.2", "default": False},
    {"id": "php70", "name": "PHP 7.0", "default": False},
    {"id": "php56", "name": "PHP 5.6", "default": False},
]

PROJECT_TYPES = [
    {"key": "php", "description": "PHP / Laravel / Symfony", "default": True},
    {"key": "html", "description": "Static HTML / Nuxt.js / Next.js", "default": False},
]


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register the static catalog tools. ``api_key`` is unused."""

    @registrar.tool(title="List Providers", open_world=False)
    async def list_providers():
        """List the cloud providers Forge can create servers on."""
        return tool_result({"providers": PROVIDERS})

    @registrar.tool(title="List Ubuntu Versions", open_world=False)
    async def list_ubuntu_versions():
        """List the Ubuntu versions available for new servers."""
        return tool_result({"ubuntu_versions": UBUNTU_VERSIONS})

    @registrar.tool(title="List Database Types", open_world=False)
    async def list_database_types():
        """List the database engines that can be installed on new servers."""
        return tool_result({"database_types": DATABASE_TYPES})

    @registrar.tool(title="List Static PHP Versions", open_world=False)
    async def list_static_php_versions():
        """List the PHP version IDs accepted when creating a server.

        Pass the ``id`` (e.g. php84), not a raw version string.
        """
        return tool_result({"php_versions": PHP_VERSIONS})

    @registrar.tool(title="List Project Types", open_world=False)
    async def list_project_types():
        """List the project types accepted when creating a site."""
        return tool_result({"project_types": PROJECT_TYPES})
