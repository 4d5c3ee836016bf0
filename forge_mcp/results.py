"""Uniform tool results returned across the MCP boundary.

Tools never raise: success payloads and failures are both wrapped in a
``CallToolResult``. Failures set ``isError`` so the client can tell them
apart from a normal answer. A rejected confirmation is *not* a failure.
"""

import json
from typing import Any

from mcp.types import CallToolResult, TextContent


def _text(text: str, *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def tool_result(data: Any) -> CallToolResult:
    """Wrap a JSON-serialisable payload as a successful tool result."""
    return _text(json.dumps(data, indent=2, default=str))


def tool_error(error: BaseException | str) -> CallToolResult:
    """Wrap an exception or message as an error-flagged tool result."""
    message = str(error)
    if not message and isinstance(error, BaseException):
        message = error.__class__.__name__
    return _text(message, is_error=True)


def confirmation_rejected(action: str, propose_tool: str) -> CallToolResult:
    """Structured "not performed" answer for an unusable confirmation token."""
    return tool_result({
        "status": "rejected",
        "performed": False,
        "action": action,
        "message": (
            "Confirmation rejected: the token is invalid, expired, already used, "
            "or does not match the confirmed parameters. "
            f"Call {propose_tool} again and get explicit user approval."
        ),
    })
