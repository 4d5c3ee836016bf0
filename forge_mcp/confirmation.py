"""Token-based confirmation protocol for mutating Forge operations.

MCP tools cannot prompt the user directly, so every mutating operation is
split into two tool calls:

Phase 1 - Propose: the confirm_* tool stores a snapshot of the parameters,
    and returns a human-readable summary plus a single-use token.
Phase 2 - Execute: after the user approves the summary, the client calls the
    action tool with the same parameters and the token. The token is validated
    against the stored snapshot, consumed, and only then is the remote API
    called.

Each action kind owns its own ``ConfirmationStore`` so a token issued for one
kind can never authorise another. Stores are in-memory only; tokens expire
after ``CONFIRMATION_EXPIRY_SECONDS`` and are cleaned up lazily on the next
validation attempt.

All store mutations are synchronous, so a validate-then-consume sequence cannot
be interleaved with another tool call on the event loop.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from forge_mcp.config import CONFIRMATION_EXPIRY_SECONDS

logger = logging.getLogger(__name__)

P = TypeVar("P")


@dataclass
class ConfirmationEntry(Generic[P]):
    """A pending confirmation. ``parameters`` is never replaced after creation."""

    token: str
    parameters: P
    created_at: float
    consumed: bool = False


class ConfirmationStore(Generic[P]):
    """In-memory registry of pending confirmations for one action kind."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, ConfirmationEntry[P]] = {}
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def create(self, parameters: P) -> ConfirmationEntry[P]:
        token = str(uuid.uuid4())
        while token in self._entries:
            token = str(uuid.uuid4())
        entry = ConfirmationEntry(token=token, parameters=parameters, created_at=self.now())
        self._entries[token] = entry
        return entry

    def get(self, token: str) -> ConfirmationEntry[P] | None:
        return self._entries.get(token)

    def remove(self, token: str) -> None:
        self._entries.pop(token, None)

    def __len__(self) -> int:
        return len(self._entries)


def create_confirmation(store: ConfirmationStore[P], parameters: P) -> ConfirmationEntry[P]:
    """Issue a new pending confirmation for ``parameters``."""
    entry = store.create(parameters)
    logger.info("Created confirmation token %s", entry.token[:8])
    return entry


def validate_confirmation(
    store: ConfirmationStore[P],
    token: str,
    params_check: Callable[[P], bool] | None = None,
    expiry_seconds: float = CONFIRMATION_EXPIRY_SECONDS,
) -> ConfirmationEntry[P] | None:
    """Return the pending entry for ``token``, or None if it cannot be used.

    Unknown, consumed, expired and mismatched tokens all yield None so that a
    caller cannot tell a replay from a guess. Expired entries are removed.
    Validation alone never consumes the token.

    Args:
        store: The store of the action kind being executed.
        token: Token returned by the propose tool.
        params_check: Predicate over the stored parameters; must return True
            only if they exactly match the parameters supplied for execution.
        expiry_seconds: Maximum age of the entry.
    """
    entry = store.get(token)
    if entry is None or entry.consumed:
        return None

    if store.now() - entry.created_at > expiry_seconds:
        store.remove(token)
        logger.info("Confirmation token %s expired", token[:8])
        return None

    if params_check is not None and not params_check(entry.parameters):
        return None

    return entry


def mark_confirmation_used(store: ConfirmationStore[P], token: str) -> None:
    """Consume a token that was just validated. Consumed is terminal."""
    entry = store.get(token)
    if entry is not None:
        entry.consumed = True


def claim_confirmation(
    store: ConfirmationStore[P],
    token: str,
    params_check: Callable[[P], bool] | None = None,
    expiry_seconds: float = CONFIRMATION_EXPIRY_SECONDS,
) -> ConfirmationEntry[P] | None:
    """Validate and consume ``token`` in one step.

    No await happens between the check and the update, so of two concurrent
    execute calls with the same token only one can succeed.
    """
    entry = validate_confirmation(store, token, params_check, expiry_seconds)
    if entry is None:
        return None
    mark_confirmation_used(store, token)
    return entry
