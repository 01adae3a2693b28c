"""Shared fixtures: a scripted chat model and in-process fake tools."""

from typing import Any, Callable, Union

import pytest
from langchain_core.messages import AIMessage, BaseMessage

from tripwise.config import Settings
from tripwise.middleware.event_collector import reset_events
from tripwise.tools.registry import ToolDescriptor, ToolRegistry


class ScriptedChatModel:
    """Stands in for a chat model: replays scripted replies and records every prompt.

    A scripted item that is an exception instance is raised instead of returned.
    When the script runs out the last reply is repeated.
    """

    def __init__(self, replies: list[Union[str, Exception]]):
        self.replies = list(replies)
        self.calls: list[list[BaseMessage]] = []

    def invoke(self, messages, **kwargs) -> AIMessage:
        self.calls.append(list(messages))
        index = min(len(self.calls), len(self.replies)) - 1
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        return AIMessage(content=reply)


def fake_tool(name: str, handler: Callable[[dict[str, Any]], Any]) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=f"fake {name}",
        input_schema={"type": "object"},
        execute=handler,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        serpapi_key=None,
        places_dev_mode=True,
        tool_timeout_s=2.0,
        default_origin_city="Tel Aviv",
    )


@pytest.fixture
def make_registry():
    def _make(**handlers: Callable[[dict[str, Any]], Any]) -> ToolRegistry:
        return ToolRegistry([fake_tool(name, handler) for name, handler in handlers.items()], timeout_s=2.0)

    return _make


@pytest.fixture(autouse=True)
def fresh_events():
    reset_events()
    yield
