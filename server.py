"""Laravel Forge MCP Server.

An MCP server that lets an AI assistant manage Laravel Forge servers, sites,
databases, certificates and deployments. Every mutating operation goes
through a two-step confirmation: a ``confirm_*`` tool returns a summary and a
single-use token, and the action tool only runs with that token after the
user has approved the summary.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import psutil
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

# Load .env before the forge_mcp modules read their configuration
load_dotenv()

from forge_mcp.config import ToolCategory, parse_tool_categories, resolve_api_key  # noqa: E402
from forge_mcp.http_client import get_server_uptime, http_lifespan  # noqa: E402
from forge_mcp.perf import configure_logging  # noqa: E402
from forge_mcp.registry import ToolRegistrar  # noqa: E402
from forge_mcp.tools import (  # noqa: E402
    catalog,
    certificates,
    commands,
    databases,
    deployments,
    servers,
    sites,
    wordpress,
)

# Configure logging to stderr (NEVER stdout -- stdout is for MCP JSON-RPC)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)

# Apply MCP_LOG_LEVEL env var
configure_logging()

logger = logging.getLogger(__name__)

TOOL_MODULES = (servers, sites, deployments, databases, certificates, commands, wordpress, catalog)
VALID_TRANSPORTS = ("stdio", "sse", "streamable-http")


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    logger.error(
        "Unhandled async error: %s",
        context.get("message", "unknown"),
        exc_info=context.get("exception"),
    )


@asynccontextmanager
async def server_lifespan(app: Any) -> AsyncIterator[None]:
    """Install the last-resort loop error handler and manage the HTTP client."""
    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
    async with http_lifespan(app):
        yield


def create_server(api_key: str, categories: Iterable[ToolCategory]) -> FastMCP:
    """Build the MCP server with the tools of the enabled categories."""
    mcp = FastMCP("forge-mcp", lifespan=server_lifespan)
    registrar = ToolRegistrar(mcp, categories)
    logger.info(
        "Enabled tool categories: %s",
        ", ".join(c.value for c in ToolCategory if registrar.enabled(c)),
    )

    @mcp.tool()
    async def test_connection(message: str) -> str:
        """Test the connection to the MCP server by echoing a message.

        Args:
            message: A test message to echo back.
        """
        return f"Echo: {message}\n{datetime.now(timezone.utc).isoformat()}"

    for module in TOOL_MODULES:
        module.register_tools(registrar, api_key)

    # -----------------------------------------------------------------------
    # Health check resource
    # -----------------------------------------------------------------------
    @mcp.resource("server://health")
    def server_health() -> str:
        """Server health status: uptime, memory usage, and registered tool counts."""
        process = psutil.Process()
        uptime = get_server_uptime()

        hours, remainder = divmod(int(uptime), 3600)
        minutes, seconds = divmod(remainder, 60)

        return json.dumps({
            "status": "healthy",
            "uptime": f"{hours}h {minutes}m {seconds}s",
            "uptime_seconds": round(uptime, 1),
            "server_memory_mb": round(process.memory_info().rss / (1024 ** 2), 1),
            "tool_count": len(registrar.registered) + 1,
            "tools_by_category": registrar.summary(),
        }, indent=2)

    logger.info(
        "Forge MCP server initialised with %d tools (%s)",
        len(registrar.registered) + 1,
        ", ".join(f"{name}: {count}" for name, count in registrar.summary().items()),
    )
    return mcp


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="forge-mcp",
        description="MCP server for Laravel Forge with confirmed mutating actions.",
    )
    parser.add_argument(
        "--api-key",
        help="Forge API token (overrides FORGE_API_KEY).",
    )
    parser.add_argument(
        "--tools",
        help="Comma-separated tool categories: readonly, write, destructive "
        "(default: FORGE_TOOLS or readonly).",
    )
    parser.add_argument(
        "--transport",
        help="stdio, sse or streamable-http (default: MCP_TRANSPORT or stdio).",
    )
    return parser.parse_args(argv)


def resolve_transport(value: str | None) -> str:
    transport = (value or os.environ.get("MCP_TRANSPORT") or "stdio").lower()
    if transport not in VALID_TRANSPORTS:
        logger.warning(
            "Invalid MCP_TRANSPORT '%s', falling back to stdio. Valid: %s",
            transport,
            ", ".join(VALID_TRANSPORTS),
        )
        transport = "stdio"
    return transport


def main(argv: list[str] | None = None) -> None:
    """Run the MCP server.

    Exits with status 1 when no API key is configured or a tool category is
    unknown.
    """
    args = parse_args(argv)

    api_key = resolve_api_key(args.api_key)
    if not api_key:
        logger.error(
            "FORGE_API_KEY environment variable or --api-key argument is required."
        )
        sys.exit(1)

    try:
        categories = parse_tool_categories(args.tools or os.environ.get("FORGE_TOOLS"))
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)

    transport = resolve_transport(args.transport)
    mcp = create_server(api_key, categories)

    logger.info("Starting Forge MCP server (%s transport)...", transport)
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
