"""Tests for startup configuration and tool registration."""

import pytest

import server
from forge_mcp.config import ToolCategory, parse_tool_categories, resolve_api_key

R, W, D = ToolCategory.READONLY, ToolCategory.WRITE, ToolCategory.DESTRUCTIVE

PAIRS = {
    "create_server": W, "delete_server": D, "reboot_server": W, "reboot_nginx": W,
    "reboot_mysql": W, "reboot_postgres": W, "create_site": W, "delete_site": D,
    "change_site_php_version": W, "add_site_aliases": W, "clear_site_log": W,
    "install_or_update_site_git": W, "remove_site_git": D, "deploy_now": W,
    "enable_quick_deployment": W, "disable_quick_deployment": W,
    "create_database": W, "sync_database": W, "delete_database": D,
    "create_database_user": W, "delete_database_user": D,
    "create_lets_encrypt_certificate": W, "activate_certificate": W,
    "delete_certificate": D, "install_wordpress": W, "uninstall_wordpress": D,
    "execute_site_command": D,
}

READ_TOOLS = {
    "get_user", "list_servers", "show_server", "list_php_versions", "list_daemons",
    "show_daemon", "list_sites", "show_site", "get_site_log", "get_site_env",
    "get_composer_packages_auth", "check_laravel_maintenance_status",
    "check_laravel_scheduler_status", "check_pulse_daemon_status",
    "check_inertia_daemon_status", "list_deployments", "get_deployment",
    "get_deployment_output", "get_deployment_log", "list_databases", "get_database",
    "list_database_users", "get_database_user", "list_certificates", "get_certificate",
    "list_site_commands", "get_site_command", "list_credentials", "list_regions",
    "list_sizes", "list_providers", "list_ubuntu_versions", "list_database_types",
    "list_static_php_versions", "list_project_types",
}


def _tools(categories):
    mcp = server.create_server("test-key", categories)
    return {tool.name: tool for tool in mcp._tool_manager.list_tools()}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, {R}),
        ("", {R}),
        ("readonly", {R}),
        ("write", {R, W}),
        ("destructive", {R, W, D}),
        ("readonly,write", {R, W}),
        (" Write , readonly ", {R, W}),
        ("readonly,destructive", {R, W, D}),
    ],
)
def test_tool_categories_expand_hierarchically(value, expected):
    assert parse_tool_categories(value) == frozenset(expected)


def test_unknown_tool_category_is_rejected():
    with pytest.raises(ValueError, match="Invalid tool categories: admin"):
        parse_tool_categories("readonly,admin")


def test_cli_api_key_takes_precedence(monkeypatch):
    monkeypatch.setenv("FORGE_API_KEY", "from-env")

    assert resolve_api_key("from-cli") == "from-cli"
    assert resolve_api_key(None) == "from-env"


def test_missing_api_key_exits(monkeypatch):
    monkeypatch.delenv("FORGE_API_KEY", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        server.main([])
    assert excinfo.value.code == 1


def test_invalid_category_exits():
    with pytest.raises(SystemExit) as excinfo:
        server.main(["--api-key", "k", "--tools", "everything"])
    assert excinfo.value.code == 1


@pytest.mark.parametrize(
    "value, expected",
    [("stdio", "stdio"), ("SSE", "sse"), ("streamable-http", "streamable-http"), ("carrier-pigeon", "stdio")],
)
def test_transport_selection(value, expected):
    assert server.resolve_transport(value) == expected


def test_main_runs_selected_transport(monkeypatch):
    runs = []
    monkeypatch.setattr("mcp.server.fastmcp.FastMCP.run", lambda self, transport: runs.append(transport))

    server.main(["--api-key=k", "--tools=write", "--transport=sse"])

    assert runs == ["sse"]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def test_readonly_exposes_no_pairs():
    tools = _tools({R})

    assert set(tools) == READ_TOOLS | {"test_connection"}
    for name in READ_TOOLS:
        assert tools[name].annotations.readOnlyHint is True
        assert tools[name].annotations.destructiveHint is False


def test_write_exposes_only_non_destructive_pairs():
    tools = _tools(parse_tool_categories("write"))

    for action, category in PAIRS.items():
        exposed = category is W
        assert (action in tools) is exposed, action
        assert (f"confirm_{action}" in tools) is exposed, action


def test_destructive_exposes_every_pair_with_flags():
    tools = _tools(parse_tool_categories("destructive"))

    assert set(tools) == READ_TOOLS | {"test_connection"} | set(PAIRS) | {f"confirm_{a}" for a in PAIRS}
    for action, category in PAIRS.items():
        for name in (action, f"confirm_{action}"):
            annotations = tools[name].annotations
            assert annotations.readOnlyHint is False, name
            assert annotations.destructiveHint is (category is D), name


def test_execute_tools_require_a_token():
    tools = _tools(parse_tool_categories("destructive"))

    for action in PAIRS:
        assert "token" in tools[action].parameters["required"], action
        assert "token" not in tools[f"confirm_{action}"].parameters.get("properties", {}), action


def test_pair_parameters_match_apart_from_token():
    tools = _tools(parse_tool_categories("destructive"))

    for action in PAIRS:
        execute_props = set(tools[action].parameters["properties"]) - {"token"}
        propose_props = set(tools[f"confirm_{action}"].parameters["properties"])
        assert execute_props == propose_props, action


@pytest.mark.asyncio
async def test_connection_echoes_message():
    tool = _tools({R})["test_connection"]

    text = await tool.fn(message="ping")

    assert text.startswith("Echo: ping\n")
