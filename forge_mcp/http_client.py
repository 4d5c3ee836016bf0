"""Shared HTTP client for Forge API calls.

Provides a long-lived httpx.AsyncClient that is reused across all tool calls,
avoiding the overhead of creating/destroying connections per request. The
client carries the base URL and JSON headers only; the API key is attached per
request by the Forge API adapter.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from forge_mcp.config import FORGE_API_BASE_URL, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "forge-mcp",
}

# ---------------------------------------------------------------------------
# Module-level singleton, set during lifespan
# ---------------------------------------------------------------------------
_client: httpx.AsyncClient | None = None
_server_start_time: float | None = None


def build_client(**overrides: Any) -> httpx.AsyncClient:
    """Create a client configured for the Forge API."""
    options: dict[str, Any] = {
        "base_url": FORGE_API_BASE_URL,
        "headers": DEFAULT_HEADERS,
        "timeout": httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=10.0),
        "limits": httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
            keepalive_expiry=60,
        ),
    }
    options.update(overrides)
    return httpx.AsyncClient(**options)


def get_client() -> httpx.AsyncClient:
    """Return the shared HTTP client.

    Raises:
        RuntimeError: If called before the server lifespan has started.
    """
    if _client is None:
        raise RuntimeError(
            "HTTP client not initialised: the server lifespan has not started."
        )
    return _client


def get_server_uptime() -> float:
    """Return server uptime in seconds, or 0 if not started."""
    if _server_start_time is None:
        return 0.0
    return time.time() - _server_start_time


@asynccontextmanager
async def http_lifespan(app: Any) -> AsyncIterator[None]:
    """FastMCP lifespan that manages the shared HTTP client."""
    global _client, _server_start_time  # noqa: PLW0603

    _server_start_time = time.time()
    _client = build_client()
    logger.info("Shared HTTP client created for %s", FORGE_API_BASE_URL)

    try:
        yield
    finally:
        await _client.aclose()
        _client = None
        logger.info("Shared HTTP client closed")
