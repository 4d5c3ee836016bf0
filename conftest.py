"""Shared fixtures for the Forge MCP server tests."""

import json
from unittest.mock import AsyncMock

import pytest

from forge_mcp.config import ToolCategory


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def all_categories() -> frozenset[ToolCategory]:
    return frozenset(ToolCategory)


@pytest.fixture
def no_sleep(monkeypatch) -> AsyncMock:
    """Make polling and settle delays instant."""
    sleep = AsyncMock(return_value=None)
    monkeypatch.setattr("asyncio.sleep", sleep)
    return sleep


def payload(result) -> dict:
    """Decode the JSON text of a successful CallToolResult."""
    assert not result.isError, result.content[0].text
    return json.loads(result.content[0].text)


def error_text(result) -> str:
    assert result.isError
    return result.content[0].text
