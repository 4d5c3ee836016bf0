"""Adapter for the Laravel Forge REST API.

Turns an (endpoint, method, payload) triple into an authenticated request on
the shared HTTP client and normalises the outcome. There are no retries at
this layer; polling and retry policies live in ``forge_mcp.polling`` and are
applied by the individual tools.
"""

import json
import logging
from enum import Enum
from typing import Any

import httpx
from mcp.types import CallToolResult

from forge_mcp.http_client import get_client
from forge_mcp.results import tool_error, tool_result

logger = logging.getLogger(__name__)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ForgeError(Exception):
    """Base class for failures talking to Forge."""


class ForgeNetworkError(ForgeError):
    """Forge could not be reached (DNS, connection refused, timeout...)."""

    def __init__(self, endpoint: str, detail: str) -> None:
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"Network error: {detail}")


class ForgeApiError(ForgeError):
    """Forge answered with a non-success status code."""

    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Forge API error ({status_code}): {json.dumps(body, default=str)}")


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


async def call_forge_api(
    endpoint: str,
    method: HttpMethod | str,
    api_key: str,
    data: dict[str, Any] | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """Call a Forge API endpoint and return the decoded response body.

    Args:
        endpoint: Path relative to the API base URL, e.g. ``/servers/1/sites``.
        method: HTTP method.
        api_key: Forge API token, sent as a bearer credential.
        data: Optional JSON payload.
        client: Client to use instead of the shared lifespan client.

    Returns:
        Parsed JSON when the response declares a JSON content type, else text.

    Raises:
        ForgeNetworkError: If the request could not be sent or completed.
        ForgeApiError: If Forge answered with a non-2xx status.
    """
    http = client or get_client()
    verb = method.value if isinstance(method, HttpMethod) else method.upper()

    try:
        response = await http.request(
            verb,
            endpoint,
            json=data,
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.TransportError as exc:
        logger.warning("Network error on %s %s: %s", verb, endpoint, exc)
        raise ForgeNetworkError(endpoint, str(exc) or exc.__class__.__name__) from exc

    body = _decode_body(response)
    if not response.is_success:
        logger.warning("Forge API %s %s returned %d", verb, endpoint, response.status_code)
        raise ForgeApiError(response.status_code, body)

    logger.debug("Forge API %s %s returned %d", verb, endpoint, response.status_code)
    return body


async def fetch_result(endpoint: str, api_key: str) -> CallToolResult:
    """GET ``endpoint`` and wrap the body (or the failure) as a tool result."""
    try:
        return tool_result(await call_forge_api(endpoint, HttpMethod.GET, api_key))
    except Exception as exc:
        return tool_error(exc)
