"""Propose/execute tool pairs for mutating Forge operations.

Every mutating capability ("action kind") is exposed as two tools:

- ``confirm_<action>`` stores the exact parameters in the action's own
  confirmation store and returns a summary plus a single-use token. It never
  calls Forge.
- ``<action>`` takes the same parameters plus the token, checks them against
  the stored snapshot field by field, consumes the token and only then calls
  Forge.

Parameters are frozen dataclasses derived from ``ActionParams``; their field
list drives both the comparison and the normalisation of identifiers and
lists.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, fields
from typing import Any, Generic, TypeVar

from mcp.types import CallToolResult

from forge_mcp.config import CONFIRMATION_EXPIRY_SECONDS, ToolCategory
from forge_mcp.confirmation import ConfirmationStore, claim_confirmation, create_confirmation
from forge_mcp.results import confirmation_rejected, tool_error, tool_result

logger = logging.getLogger(__name__)

HIDDEN = "(provided, hidden)"


def identifier(**kwargs: Any) -> Any:
    """Dataclass field for a Forge ID; compared as a string (lists element-wise)."""
    return field(metadata={"identifier": True}, **kwargs)


@dataclass(frozen=True)
class ActionParams:
    """Immutable parameter record for one action kind.

    Lists are stored as tuples and identifiers as strings, so equality is
    exact on every field, order-sensitive for sequences, and tolerant of
    ``"12"`` versus ``12`` for IDs only.
    """

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                value = tuple(value)
            if f.metadata.get("identifier") and value is not None:
                if isinstance(value, tuple):
                    value = tuple(str(item) for item in value)
                else:
                    value = str(value)
            object.__setattr__(self, f.name, value)

    def mismatched_fields(self, other: "ActionParams") -> list[str]:
        """Names of the fields whose values differ from ``other``."""
        if type(other) is not type(self):
            return [f.name for f in fields(self)]
        return [
            f.name for f in fields(self)
            if getattr(self, f.name) != getattr(other, f.name)
        ]

    def matches(self, other: "ActionParams") -> bool:
        return not self.mismatched_fields(other)

    def problems(self) -> list[str]:
        """Cross-field validation errors. Overridden by action kinds that need it."""
        return []


class SummaryBuilder:
    """Builds the multi-line, human-readable text shown before confirmation."""

    def __init__(self, headline: str) -> None:
        self._lines = [headline]

    def add(self, label: str, value: Any) -> "SummaryBuilder":
        """Add ``label: value``; None is skipped, so optional fields only appear when set."""
        if value is None:
            return self
        if isinstance(value, bool):
            text = "Yes" if value else "No"
        elif isinstance(value, tuple):
            text = ", ".join(str(item) for item in value) if value else "[none]"
        else:
            text = str(value)
        self._lines.append(f"{label}: {text}")
        return self

    def named(self, label: str, name: str, ident: str) -> "SummaryBuilder":
        self._lines.append(f"{label}: {name} (ID: {ident})")
        return self

    def secret(self, label: str, value: Any) -> "SummaryBuilder":
        if value:
            self._lines.append(f"{label}: {HIDDEN}")
        return self

    def note(self, text: str) -> "SummaryBuilder":
        self._lines.append(text)
        return self

    def build(self) -> str:
        return "\n".join(self._lines)


P = TypeVar("P", bound=ActionParams)


class ConfirmedAction(Generic[P]):
    """The shared logic behind one propose/execute tool pair.

    Args:
        name: Action name; also the execute tool name.
        summarize: Renders the parameters for the human reviewer.
        perform: Coroutine doing the remote work, given params and API key.
        store: Confirmation store owned by this action kind.
        destructive: Marks irreversible actions; adds a warning to the summary.
        expiry_seconds: How long a proposal stays executable.
    """

    def __init__(
        self,
        name: str,
        *,
        summarize: Callable[[P], str],
        perform: Callable[[P, str], Awaitable[Any]],
        store: ConfirmationStore[P] | None = None,
        destructive: bool = False,
        expiry_seconds: float = CONFIRMATION_EXPIRY_SECONDS,
    ) -> None:
        self.name = name
        self.propose_tool = f"confirm_{name}"
        self.store: ConfirmationStore[P] = store if store is not None else ConfirmationStore()
        self.destructive = destructive
        self.expiry_seconds = expiry_seconds
        self._summarize = summarize
        self._perform = perform

    @property
    def category(self) -> ToolCategory:
        return ToolCategory.DESTRUCTIVE if self.destructive else ToolCategory.WRITE

    def propose(self, params: P) -> CallToolResult:
        """Store ``params`` and return the summary and token for user approval."""
        problems = params.problems()
        if problems:
            return tool_error("Invalid parameters: " + "; ".join(problems))

        try:
            summary = self._summarize(params)
        except Exception as exc:
            logger.error("Could not summarise %s: %s", self.name, exc)
            return tool_error(exc)

        if self.destructive:
            summary = (
                "⚠️  DESTRUCTIVE ACTION: this cannot be undone.\n\n" + summary
            )
        summary += '\n\nType "yes" to confirm or "no" to cancel.'

        entry = create_confirmation(self.store, params)
        logger.info("Proposed %s (token %s)", self.name, entry.token[:8])
        return tool_result({
            "status": "confirmation_required",
            "action": self.name,
            "token": entry.token,
            "summary": summary,
            "message": (
                "Show this summary to the user. Only if they explicitly approve, "
                f"call {self.name} with the same parameters and this token."
            ),
            "expires_in_seconds": int(self.expiry_seconds),
        })

    async def execute(self, params: P, token: str, api_key: str) -> CallToolResult:
        """Run the action if ``token`` confirms exactly these ``params``.

        The token is consumed before Forge is called, so a failed remote call
        needs a fresh proposal and approval.
        """
        problems = params.problems()
        if problems:
            return tool_error("Invalid parameters: " + "; ".join(problems))

        def params_check(stored: P) -> bool:
            mismatched = stored.mismatched_fields(params)
            if mismatched:
                logger.warning(
                    "Token %s for %s does not match fields: %s",
                    token[:8], self.name, ", ".join(mismatched),
                )
            return not mismatched

        entry = claim_confirmation(self.store, token, params_check, self.expiry_seconds)
        if entry is None:
            logger.info("Rejected %s: unusable token %s", self.name, token[:8])
            return confirmation_rejected(self.name, self.propose_tool)

        logger.info("Executing %s (token %s)", self.name, token[:8])
        try:
            data = await self._perform(params, api_key)
        except Exception as exc:
            logger.error("%s failed: %s", self.name, exc)
            return tool_error(exc)

        return tool_result({"status": "success", "action": self.name, "result": data})
