"""End-to-end tests of registered tools with the Forge API faked out."""

import pytest

import server
from conftest import error_text, payload
from forge_mcp.config import ToolCategory
from forge_mcp.forge_api import ForgeApiError
from forge_mcp.tools import commands, wordpress


class FakeForge:
    """Stand-in for ``call_forge_api`` answering from a route table.

    A route value may be a response, an exception to raise, or a list of
    those consumed one call at a time (the last one repeats).
    """

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    async def __call__(self, endpoint, method, api_key, data=None, **kwargs):
        verb = getattr(method, "value", method)
        self.calls.append((verb, endpoint, data))
        response = self.routes[(verb, endpoint)]
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, Exception):
            raise response
        return response

    def called(self, verb, endpoint):
        return [c for c in self.calls if c[0] == verb and c[1] == endpoint]


@pytest.fixture
def host():
    return server.create_server("test-key", frozenset(ToolCategory))


@pytest.fixture
def tools(host):
    return {tool.name: tool.fn for tool in host._tool_manager.list_tools()}


def _fake(monkeypatch, module, routes) -> FakeForge:
    fake = FakeForge(routes)
    monkeypatch.setattr(f"{module}.call_forge_api", fake)
    return fake


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_sizes_filters_regions(monkeypatch, tools):
    _fake(monkeypatch, "forge_mcp.tools.servers", {
        ("GET", "/regions"): {"regions": {
            "ocean2": [
                {"id": "ams2", "sizes": [{"id": "s-1vcpu-1gb"}]},
                {"id": "fra1", "sizes": [{"id": "s-2vcpu-4gb"}]},
            ],
        }},
    })

    found = payload(await tools["list_sizes"](provider="ocean2", region="fra1"))
    missing = payload(await tools["list_sizes"](provider="hetzner", region="fra1"))

    assert found == {"sizes": [{"id": "s-2vcpu-4gb"}], "allow_custom": True}
    assert missing == {"sizes": [], "allow_custom": True}


@pytest.mark.asyncio
async def test_static_catalog_needs_no_network(tools):
    data = payload(await tools["list_static_php_versions"]())

    ids = [v["id"] for v in data["php_versions"]]
    assert ids[0] == "php84"
    assert "php56" in ids


@pytest.mark.asyncio
async def test_read_tool_failure_is_error_envelope(monkeypatch, tools):
    _fake(monkeypatch, "forge_mcp.forge_api", {
        ("GET", "/servers/1"): ForgeApiError(404, {"message": "Not found"}),
    })

    result = await tools["show_server"](server_id=1)

    assert "Forge API error (404)" in error_text(result)


# ---------------------------------------------------------------------------
# Confirmed actions through the registered tools
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_server_round_trip(monkeypatch, tools):
    fake = _fake(monkeypatch, "forge_mcp.tools.servers", {
        ("DELETE", "/servers/12"): "",
    })

    proposal = payload(await tools["confirm_delete_server"](server_id=12, server_name="web-1"))
    assert "Server: web-1 (ID: 12)" in proposal["summary"]
    assert "DESTRUCTIVE" in proposal["summary"]
    assert fake.calls == []

    wrong = payload(await tools["delete_server"](
        server_id=13, server_name="web-1", token=proposal["token"]
    ))
    assert wrong["status"] == "rejected"
    assert fake.calls == []

    done = payload(await tools["delete_server"](
        server_id="12", server_name="web-1", token=proposal["token"]
    ))
    assert done["status"] == "success"
    assert fake.calls == [("DELETE", "/servers/12", None)]

    replay = payload(await tools["delete_server"](
        server_id=12, server_name="web-1", token=proposal["token"]
    ))
    assert replay["status"] == "rejected"
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_tokens_are_scoped_to_their_action(monkeypatch, tools):
    fake = _fake(monkeypatch, "forge_mcp.tools.servers", {
        ("POST", "/servers/12/reboot"): {},
        ("POST", "/servers/12/nginx/reboot"): {},
    })

    token = payload(await tools["confirm_reboot_server"](server_id=12, server_name="web"))["token"]
    result = payload(await tools["reboot_nginx"](server_id=12, server_name="web", token=token))

    assert result["status"] == "rejected"
    assert fake.calls == []


@pytest.mark.asyncio
async def test_create_database_requires_password_with_user(tools):
    result = await tools["confirm_create_database"](
        server_id=1, server_name="db", name="app", user="app_user"
    )

    assert "password is required" in error_text(result)


@pytest.mark.asyncio
async def test_database_user_password_is_hidden_but_compared(monkeypatch, tools):
    fake = _fake(monkeypatch, "forge_mcp.tools.databases", {
        ("POST", "/servers/1/database-users"): {"user": {"id": 9}},
    })
    args = dict(server_id=1, server_name="db", name="app", password="hunter2", databases=[3, "4"])

    proposal = payload(await tools["confirm_create_database_user"](**args))
    assert "hunter2" not in proposal["summary"]
    assert "Database IDs: 3, 4" in proposal["summary"]

    wrong = payload(await tools["create_database_user"](
        **{**args, "password": "other"}, token=proposal["token"]
    ))
    assert wrong["status"] == "rejected"

    done = payload(await tools["create_database_user"](**args, token=proposal["token"]))
    assert done["result"] == {"user": {"id": 9}}
    assert fake.calls[0][2] == {"name": "app", "password": "hunter2", "databases": [3, 4]}


@pytest.mark.asyncio
async def test_dns_provider_credentials_are_hidden(monkeypatch, tools):
    from forge_mcp.tools.certificates import DnsProvider

    fake = _fake(monkeypatch, "forge_mcp.tools.certificates", {
        ("POST", "/servers/1/sites/2/certificates/letsencrypt"): {"certificate": {"id": 5}},
    })
    provider = DnsProvider(type="cloudflare", cloudflare_api_token="cf-secret-token")
    args = dict(
        server_id=1, server_name="web", site_id=2, site_name="example.com",
        domains=["example.com", "*.example.com"], dns_provider=provider,
    )

    proposal = payload(await tools["confirm_create_lets_encrypt_certificate"](**args))
    assert "cf-secret-token" not in proposal["summary"]
    assert "DNS provider: cloudflare" in proposal["summary"]

    await tools["create_lets_encrypt_certificate"](**args, token=proposal["token"])
    assert fake.calls[0][2] == {
        "domains": ["example.com", "*.example.com"],
        "dns_provider": {"type": "cloudflare", "cloudflare_api_token": "cf-secret-token"},
    }


@pytest.mark.asyncio
async def test_reordered_domains_do_not_match(monkeypatch, tools):
    fake = _fake(monkeypatch, "forge_mcp.tools.certificates", {})
    args = dict(server_id=1, server_name="web", site_id=2, site_name="example.com")

    token = payload(await tools["confirm_create_lets_encrypt_certificate"](
        **args, domains=["a.com", "b.com"]
    ))["token"]
    result = payload(await tools["create_lets_encrypt_certificate"](
        **args, domains=["b.com", "a.com"], token=token
    ))

    assert result["status"] == "rejected"
    assert fake.calls == []


# ---------------------------------------------------------------------------
# Long-running actions
# ---------------------------------------------------------------------------

COMMANDS = "/servers/1/sites/2/commands"


@pytest.mark.asyncio
async def test_site_command_waits_for_completion(monkeypatch, tools, no_sleep):
    _fake(monkeypatch, "forge_mcp.tools.commands", {
        ("POST", COMMANDS): {"command": {"id": 77, "status": "waiting"}},
        ("GET", f"{COMMANDS}/77"): [
            {"command": {"id": 77, "status": "running"}},
            {"command": {"id": 77, "status": "finished"}, "output": "ok\n"},
        ],
    })
    args = dict(server_id=1, site_id=2, command="php artisan about")

    token = payload(await tools["confirm_execute_site_command"](**args))["token"]
    result = payload(await tools["execute_site_command"](**args, token=token))["result"]

    assert result == {"command_id": 77, "status": "finished", "succeeded": True, "output": "ok\n"}


@pytest.mark.asyncio
async def test_site_command_reports_in_progress_on_timeout(monkeypatch, tools, no_sleep):
    fake = _fake(monkeypatch, "forge_mcp.tools.commands", {
        ("POST", COMMANDS): {"command": {"id": 77, "status": "waiting"}},
        ("GET", f"{COMMANDS}/77"): {"command": {"id": 77, "status": "running"}},
    })
    args = dict(server_id=1, site_id=2, command="sleep 600")

    token = payload(await tools["confirm_execute_site_command"](**args))["token"]
    data = payload(await tools["execute_site_command"](**args, token=token))

    assert data["status"] == "success"
    assert data["result"]["status"] == "in_progress"
    assert len(fake.called("GET", f"{COMMANDS}/77")) == commands.COMMAND_POLL_ATTEMPTS


@pytest.mark.asyncio
async def test_site_command_without_waiting(monkeypatch, tools, no_sleep):
    fake = _fake(monkeypatch, "forge_mcp.tools.commands", {
        ("POST", COMMANDS): {"command": {"id": 78, "status": "waiting"}},
    })
    args = dict(server_id=1, site_id=2, command="ls", wait_for_completion=False)

    token = payload(await tools["confirm_execute_site_command"](**args))["token"]
    result = payload(await tools["execute_site_command"](**args, token=token))["result"]

    assert result["command_id"] == 78
    assert result["status"] == "waiting"
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_site_command_without_id_is_error(monkeypatch, tools, no_sleep):
    _fake(monkeypatch, "forge_mcp.tools.commands", {("POST", COMMANDS): {}})
    args = dict(server_id=1, site_id=2, command="ls")

    token = payload(await tools["confirm_execute_site_command"](**args))["token"]
    result = await tools["execute_site_command"](**args, token=token)

    assert "no command ID" in error_text(result)


@pytest.mark.asyncio
async def test_install_wordpress_fresh_site(monkeypatch, tools, no_sleep):
    already = ForgeApiError(422, {"message": "The site already has an application installed."})
    fake = _fake(monkeypatch, "forge_mcp.tools.wordpress", {
        ("DELETE", "/servers/1/sites/5"): "",
        ("POST", "/servers/1/sites"): {"site": {"id": 6, "status": "installing"}},
        ("POST", "/servers/1/sites/6/wordpress"): [already, {"ok": True}],
        ("GET", "/servers/1/sites/6"): [
            {"site": {"id": 6, "status": "installing", "app": None}},
            {"site": {"id": 6, "status": "installed", "app": "wordpress"}},
        ],
    })
    args = dict(
        server_id=1, server_name="web", site_name="blog.example.com",
        database="wp", user_id=3, site_id=5, php_version="php83",
    )

    proposal = payload(await tools["confirm_install_wordpress"](**args))
    assert "DELETED" in proposal["summary"]

    result = payload(await tools["install_wordpress"](**args, token=proposal["token"]))["result"]

    assert result["status"] == "installed"
    assert result["site_id"] == "6"
    assert fake.called("POST", "/servers/1/sites")[0][2] == {
        "domain": "blog.example.com", "project_type": "php", "php_version": "php83",
    }
    assert len(fake.called("POST", "/servers/1/sites/6/wordpress")) == 2
    no_sleep.assert_any_await(wordpress.DELETE_SETTLE_SECONDS)


@pytest.mark.asyncio
async def test_install_wordpress_ignores_failed_delete_and_reports_installing(
    monkeypatch, tools, no_sleep
):
    fake = _fake(monkeypatch, "forge_mcp.tools.wordpress", {
        ("DELETE", "/servers/1/sites/5"): ForgeApiError(404, {"message": "Not found"}),
        ("POST", "/servers/1/sites"): {"site": {"id": 6}},
        ("POST", "/servers/1/sites/6/wordpress"): {"ok": True},
        ("GET", "/servers/1/sites/6"): {"site": {"id": 6, "status": "installing"}},
    })
    args = dict(server_id=1, server_name="web", site_name="blog.example.com",
                database="wp", user_id=3, site_id=5)

    token = payload(await tools["confirm_install_wordpress"](**args))["token"]
    result = payload(await tools["install_wordpress"](**args, token=token))["result"]

    assert result["status"] == "installing"
    assert len(fake.called("GET", "/servers/1/sites/6")) == wordpress.READY_POLL_ATTEMPTS


@pytest.mark.asyncio
async def test_install_wordpress_on_existing_site_needs_site_id(tools):
    result = await tools["confirm_install_wordpress"](
        server_id=1, server_name="web", site_name="blog.example.com",
        database="wp", user_id=3, create_fresh_site=False,
    )

    assert "site_id is required" in error_text(result)


@pytest.mark.asyncio
async def test_install_wordpress_reports_install_failure(monkeypatch, tools, no_sleep):
    _fake(monkeypatch, "forge_mcp.tools.wordpress", {
        ("POST", "/servers/1/sites/5/wordpress"): ForgeApiError(403, {"message": "Forbidden"}),
    })
    args = dict(server_id=1, server_name="web", site_name="blog.example.com",
                database="wp", user_id=3, site_id=5, create_fresh_site=False)

    token = payload(await tools["confirm_install_wordpress"](**args))["token"]
    result = await tools["install_wordpress"](**args, token=token)

    assert "WordPress installation failed" in error_text(result)


# ---------------------------------------------------------------------------
# Through the MCP host
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_error_flag_survives_the_host(monkeypatch, host):
    _fake(monkeypatch, "forge_mcp.forge_api", {
        ("GET", "/servers/1"): ForgeApiError(404, {"message": "Not found"}),
    })

    result = await host.call_tool("show_server", {"server_id": 1})

    assert "Forge API error (404)" in error_text(result)


@pytest.mark.asyncio
async def test_rejection_survives_the_host(monkeypatch, host):
    fake = _fake(monkeypatch, "forge_mcp.tools.servers", {("DELETE", "/servers/12"): ""})

    proposal = payload(await host.call_tool(
        "confirm_delete_server", {"server_id": 12, "server_name": "web-1"}
    ))
    rejected = payload(await host.call_tool(
        "delete_server", {"server_id": 13, "server_name": "web-1", "token": proposal["token"]}
    ))
    done = payload(await host.call_tool(
        "delete_server", {"server_id": "12", "server_name": "web-1", "token": proposal["token"]}
    ))

    assert rejected["status"] == "rejected"
    assert rejected["performed"] is False
    assert done["status"] == "success"
    assert len(fake.calls) == 1
