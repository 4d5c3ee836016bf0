"""Runtime configuration for the Forge MCP server.

Values are read once from environment variables at import time. Command-line
flags handled in ``server.py`` take precedence where both exist.
"""

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s '%s', using default %s", name, raw, default)
        return default


# =============================================================================
# REMOTE API
# =============================================================================

FORGE_API_BASE_URL: str = os.environ.get(
    "FORGE_API_BASE_URL", "https://forge.laravel.com/api/v1"
).rstrip("/")

HTTP_TIMEOUT_SECONDS: float = _env_float("FORGE_HTTP_TIMEOUT", 30.0)

# =============================================================================
# CONFIRMATIONS
# =============================================================================

# How long a proposed action stays executable. Confirmations live in memory
# only; a restart invalidates all of them.
CONFIRMATION_EXPIRY_SECONDS: float = _env_float("FORGE_CONFIRMATION_TTL_SECONDS", 600.0)

# =============================================================================
# TOOL CATEGORIES
# =============================================================================


class ToolCategory(str, Enum):
    """Exposure level of a tool, from safest to most dangerous."""

    READONLY = "readonly"
    WRITE = "write"
    DESTRUCTIVE = "destructive"


DEFAULT_TOOL_CATEGORIES = "readonly"

# Enabling a category implicitly enables every safer one.
_IMPLIED_CATEGORIES: dict[ToolCategory, frozenset[ToolCategory]] = {
    ToolCategory.READONLY: frozenset({ToolCategory.READONLY}),
    ToolCategory.WRITE: frozenset({ToolCategory.READONLY, ToolCategory.WRITE}),
    ToolCategory.DESTRUCTIVE: frozenset(ToolCategory),
}


def parse_tool_categories(value: str | None) -> frozenset[ToolCategory]:
    """Parse a comma-separated category list such as ``"readonly,write"``.

    Args:
        value: Raw list from ``--tools`` or ``FORGE_TOOLS``. Empty means readonly.

    Returns:
        The selected categories, expanded so that ``write`` includes
        ``readonly`` and ``destructive`` includes everything.

    Raises:
        ValueError: If any name is not a known category.
    """
    names = [part.strip().lower() for part in (value or DEFAULT_TOOL_CATEGORIES).split(",")]
    names = [name for name in names if name]
    if not names:
        names = [DEFAULT_TOOL_CATEGORIES]

    valid = {category.value for category in ToolCategory}
    invalid = [name for name in names if name not in valid]
    if invalid:
        raise ValueError(
            f"Invalid tool categories: {', '.join(invalid)}. "
            f"Valid categories are: {', '.join(sorted(valid))}"
        )

    selected: set[ToolCategory] = set()
    for name in names:
        selected |= _IMPLIED_CATEGORIES[ToolCategory(name)]
    return frozenset(selected)


def resolve_api_key(cli_value: str | None = None) -> str | None:
    """Return the Forge API key, preferring the command-line value.

    The key is never logged or persisted.
    """
    if cli_value is not None:
        return cli_value
    return os.environ.get("FORGE_API_KEY")
