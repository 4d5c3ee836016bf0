"""Logging setup and tool timing for the Forge MCP server."""

import functools
import logging
import os
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

_LOG_LEVEL = os.environ.get("MCP_LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    """Apply the MCP_LOG_LEVEL environment variable to the root logger."""
    numeric = getattr(logging, _LOG_LEVEL, logging.INFO)
    logging.getLogger().setLevel(numeric)
    logger.debug("Log level set to %s", _LOG_LEVEL)


def timed(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that logs execution time of an async tool function.

    Tools return error envelopes instead of raising, so the outcome is read
    from the result's ``isError`` flag.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        start = time.perf_counter()
        tool_name = fn.__name__
        try:
            result = await fn(*args, **kwargs)
        except Exception:
            logger.error("%s raised after %.3fs", tool_name, time.perf_counter() - start)
            raise
        elapsed = time.perf_counter() - start
        if getattr(result, "isError", False):
            logger.warning("%s returned an error after %.3fs", tool_name, elapsed)
        else:
            logger.info("%s completed in %.3fs", tool_name, elapsed)
        return result

    return wrapper
