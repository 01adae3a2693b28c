import json
import threading
import time

import pytest
from langchain.tools import tool

from tests.conftest import fake_tool
from tripwise.config import Settings
from tripwise.schema import ToolCall, ToolFailure, ToolSuccess
from tripwise.tools.registry import (
    ToolExecutionError,
    ToolRegistry,
    build_default_registry,
    normalize_result,
)


@tool
def echo_city(city: str) -> str:
    """Echo the city back as JSON."""
    return json.dumps({"ok": True, "city": city})


class TestNormalizeResult:
    def test_json_string(self):
        assert normalize_result('{"ok": true, "city": "Rome"}') == ToolSuccess(payload={"ok": True, "city": "Rome"})

    def test_reported_failure(self):
        assert normalize_result({"ok": False, "error": "No such city"}) == ToolFailure(reason="No such city")
        assert isinstance(normalize_result({"success": False}), ToolFailure)

    def test_plain_values_are_wrapped(self):
        assert normalize_result("sunny").payload == {"result": "sunny"}
        assert normalize_result(42).payload == {"result": 42}


class TestExecution:
    def test_success(self):
        registry = ToolRegistry([fake_tool("get_weather", lambda args: {"ok": True, "location": args["location"]})])
        inv = registry.execute("get_weather", {"location": "Oslo"})
        assert inv.succeeded
        assert inv.payload == {"ok": True, "location": "Oslo"}
        assert inv.args == {"location": "Oslo"}

    def test_exception_becomes_failure(self):
        def boom(args):
            raise ValueError("Unsupported currency code 'ZZZ'.")

        inv = ToolRegistry([fake_tool("convert_currency", boom)]).execute("convert_currency", {})
        assert inv.result == ToolFailure(reason="Unsupported currency code 'ZZZ'.")

    def test_timeout_becomes_failure(self):
        release = threading.Event()
        registry = ToolRegistry([fake_tool("slow", lambda args: release.wait(5))], timeout_s=0.05)
        try:
            inv = registry.execute("slow", {})
        finally:
            release.set()
        assert not inv.succeeded
        assert inv.result.reason == "slow timed out after 0.05s"

    def test_unknown_tool_raises(self):
        with pytest.raises(ToolExecutionError, match="not_a_tool"):
            ToolRegistry([]).execute("not_a_tool", {})

    def test_results_keep_call_order(self):
        def slow(args):
            time.sleep(0.1)
            return {"ok": True, "who": "slow"}

        registry = ToolRegistry([
            fake_tool("slow", slow),
            fake_tool("fast", lambda args: {"ok": True, "who": "fast"}),
        ])
        invocations = registry.execute_many([ToolCall(name="slow"), ToolCall(name="fast")])
        assert [inv.payload["who"] for inv in invocations] == ["slow", "fast"]

    def test_calls_run_concurrently(self):
        barrier = threading.Barrier(2, timeout=2)

        def meet(args):
            barrier.wait()
            return {"ok": True}

        registry = ToolRegistry([fake_tool("a", meet), fake_tool("b", meet)])
        invocations = registry.execute_many([ToolCall(name="a"), ToolCall(name="b")])
        assert all(inv.succeeded for inv in invocations)

    def test_large_batch_starts_every_call_at_once(self):
        names = [f"tool{i}" for i in range(7)]
        barrier = threading.Barrier(len(names), timeout=2)

        def meet(args):
            barrier.wait()
            return {"ok": True}

        registry = ToolRegistry([fake_tool(name, meet) for name in names], timeout_s=1.0)
        invocations = registry.execute_many([ToolCall(name=name) for name in names])
        assert all(inv.succeeded for inv in invocations)

    def test_empty_batch(self):
        assert ToolRegistry([]).execute_many([]) == []


class TestCatalogue:
    def test_langchain_tool_descriptor(self):
        registry = ToolRegistry.from_tools([echo_city])
        descriptor = registry.get("echo_city")
        assert "city" in descriptor.input_schema["properties"]
        assert registry.execute("echo_city", {"city": "Rome"}).payload == {"ok": True, "city": "Rome"}

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            ToolRegistry([fake_tool("a", dict), fake_tool("a", dict)])

    def test_default_catalogue(self):
        registry = build_default_registry(Settings(_env_file=None, places_dev_mode=True))
        assert registry.names == [
            "get_weather",
            "get_country_info",
            "convert_currency",
            "search_flights",
            "search_hotels",
            "search_places",
            "analyze_user_context",
        ]
