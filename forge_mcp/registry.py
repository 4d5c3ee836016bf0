"""Tool registration with metadata flags and category filtering.

Tool modules never call ``mcp.add_tool`` themselves. They decorate their
functions through a ``ToolRegistrar``, which derives the MCP annotations from
the tool's category, wraps the function in ``timed`` and silently skips tools
whose category was not enabled at startup.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from forge_mcp.actions import ConfirmedAction
from forge_mcp.config import ToolCategory
from forge_mcp.perf import timed

logger = logging.getLogger(__name__)

ToolFn = Callable[..., Any]


class ToolRegistrar:
    """Registers tools on a FastMCP server for the enabled categories only."""

    def __init__(self, mcp: FastMCP, categories: Iterable[ToolCategory]) -> None:
        self.mcp = mcp
        self.categories = frozenset(categories)
        self.registered: dict[str, ToolCategory] = {}

    def enabled(self, category: ToolCategory) -> bool:
        return category in self.categories

    def _add(
        self,
        fn: ToolFn,
        *,
        name: str,
        title: str,
        category: ToolCategory,
        annotations: ToolAnnotations,
        description: str | None = None,
    ) -> ToolFn:
        if not self.enabled(category):
            logger.debug("Skipping %s (%s tools disabled)", name, category.value)
            return fn
        # Timing logs use the function name.
        fn.__name__ = name
        self.mcp.add_tool(
            timed(fn), name=name, title=title,
            description=description, annotations=annotations,
        )
        self.registered[name] = category
        logger.info("Registered tool %s [%s]", name, category.value)
        return fn

    def tool(
        self,
        *,
        title: str,
        category: ToolCategory = ToolCategory.READONLY,
        name: str | None = None,
        idempotent: bool | None = None,
        open_world: bool = True,
        description: str | None = None,
    ) -> Callable[[ToolFn], ToolFn]:
        """Decorator registering a plain tool; the docstring becomes its description."""

        def decorator(fn: ToolFn) -> ToolFn:
            annotations = ToolAnnotations(
                title=title,
                readOnlyHint=category is ToolCategory.READONLY,
                destructiveHint=category is ToolCategory.DESTRUCTIVE,
                idempotentHint=(
                    category is ToolCategory.READONLY if idempotent is None else idempotent
                ),
                openWorldHint=open_world,
            )
            return self._add(
                fn, name=name or fn.__name__, title=title,
                category=category, annotations=annotations, description=description,
            )

        return decorator

    def propose(self, action: ConfirmedAction, *, title: str) -> Callable[[ToolFn], ToolFn]:
        """Decorator registering the ``confirm_<action>`` half of a pair.

        Proposing never reaches Forge, but the tool shares the pair's category
        and destructive flag so hosts can apply the same friction to both.
        """

        def decorator(fn: ToolFn) -> ToolFn:
            annotations = ToolAnnotations(
                title=f"Confirm {title}",
                readOnlyHint=False,
                destructiveHint=action.destructive,
                idempotentHint=False,
                openWorldHint=False,
            )
            return self._add(
                fn, name=action.propose_tool, title=f"Confirm {title}",
                category=action.category, annotations=annotations,
            )

        return decorator

    def execute(self, action: ConfirmedAction, *, title: str) -> Callable[[ToolFn], ToolFn]:
        """Decorator registering the token-gated ``<action>`` half of a pair."""

        def decorator(fn: ToolFn) -> ToolFn:
            annotations = ToolAnnotations(
                title=title,
                readOnlyHint=False,
                destructiveHint=action.destructive,
                idempotentHint=False,
                openWorldHint=True,
            )
            return self._add(
                fn, name=action.name, title=title,
                category=action.category, annotations=annotations,
            )

        return decorator

    def summary(self) -> dict[str, int]:
        """Count of registered tools per category."""
        counts = {category.value: 0 for category in ToolCategory}
        for category in self.registered.values():
            counts[category.value] += 1
        return counts
