"""Tool catalogue and isolated tool execution.

Every execution attempt yields exactly one ``ToolInvocation`` whose result is
either ``ToolSuccess`` or ``ToolFailure``. Executor exceptions and timeouts are
converted, never re-raised. Asking for a tool that is not registered is a
programming error and raises ``ToolExecutionError``.
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence

from langchain_core.tools import BaseTool
from pydantic import BaseModel

from tripwise.config import Settings
from tripwise.schema import ToolCall, ToolFailure, ToolInvocation, ToolResult, ToolSuccess

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    """Raised when a caller asks for a tool the registry does not know."""


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: dict[str, Any]
    execute: Callable[[dict[str, Any]], Any] = field(repr=False)

    @classmethod
    def from_tool(cls, tool: BaseTool) -> "ToolDescriptor":
        return cls(
            name=tool.name,
            description=tool.description,
            input_schema=tool.get_input_schema().model_json_schema(),
            execute=tool.invoke,
        )


def normalize_result(raw: Any) -> ToolResult:
    """Turn whatever an executor returned into a tagged result.

    Pydantic models, dicts and JSON strings are accepted; ``ok: false`` or
    ``success: false`` marks a provider-reported failure.
    """
    if isinstance(raw, BaseModel):
        payload = raw.model_dump(mode="json")
    elif isinstance(raw, dict):
        payload = raw
    elif isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = raw
        payload = decoded if isinstance(decoded, dict) else {"result": decoded}
    else:
        payload = {"result": raw}

    if payload.get("ok") is False or payload.get("success") is False:
        return ToolFailure(reason=str(payload.get("error") or "the tool reported a failure"))
    return ToolSuccess(payload=payload)


class ToolRegistry:
    """A fixed catalogue of named tools. Stateless apart from the catalogue itself."""

    def __init__(
        self,
        descriptors: Iterable[ToolDescriptor] = (),
        *,
        timeout_s: Optional[float] = 15.0,
    ):
        self._tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in self._tools:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            self._tools[descriptor.name] = descriptor
        self.timeout_s = timeout_s

    @classmethod
    def from_tools(cls, tools: Iterable[BaseTool], **kwargs) -> "ToolRegistry":
        return cls([ToolDescriptor.from_tool(t) for t in tools], **kwargs)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolExecutionError(f"Unknown tool '{name}'. Registered: {', '.join(self._tools)}") from None

    def execute(self, name: str, args: dict[str, Any], timeout_s: Optional[float] = None) -> ToolInvocation:
        return self.execute_many([ToolCall(name=name, args=args)], timeout_s=timeout_s)[0]

    def execute_many(self, calls: Sequence[ToolCall], timeout_s: Optional[float] = None) -> list[ToolInvocation]:
        """Run *calls* concurrently and return their invocations in the order given.

        Returns only once every call has finished, failed or timed out.
        """
        descriptors = [self.get(call.name) for call in calls]
        if not calls:
            return []
        timeout = self.timeout_s if timeout_s is None else timeout_s

        # One worker per call so every clock starts at submission.
        # Not a context manager: leaving one would block on a hung tool.
        pool = ThreadPoolExecutor(
            max_workers=len(calls),
            thread_name_prefix="tripwise-tool",
        )
        try:
            started = []
            for call, descriptor in zip(calls, descriptors):
                logger.info("Executing tool %s with %s", call.name, call.args)
                started.append((time.perf_counter(), pool.submit(descriptor.execute, dict(call.args))))

            invocations = []
            for call, (t0, future) in zip(calls, started):
                remaining = None if timeout is None else max(0.0, timeout - (time.perf_counter() - t0))
                result = self._collect(call, future, remaining, timeout)
                duration_ms = (time.perf_counter() - t0) * 1000
                if isinstance(result, ToolFailure):
                    logger.warning("Tool %s failed in %.0fms: %s", call.name, duration_ms, result.reason)
                else:
                    logger.info("Tool %s succeeded in %.0fms", call.name, duration_ms)
                invocations.append(ToolInvocation(
                    tool_name=call.name,
                    args=dict(call.args),
                    result=result,
                    duration_ms=round(duration_ms, 2),
                ))
            return invocations
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _collect(call: ToolCall, future, remaining: Optional[float], timeout: Optional[float]) -> ToolResult:
        try:
            return normalize_result(future.result(timeout=remaining))
        except FutureTimeoutError:
            future.cancel()
            return ToolFailure(reason=f"{call.name} timed out after {timeout:g}s")
        except Exception as e:
            logger.debug("Tool %s raised", call.name, exc_info=True)
            return ToolFailure(reason=str(e) or type(e).__name__)


def build_default_registry(settings: Settings) -> ToolRegistry:
    """The full travel catalogue, in routing order."""
    from tripwise.tools.external.country import get_country_info
    from tripwise.tools.external.currency import convert_currency
    from tripwise.tools.external.flights import search_flights
    from tripwise.tools.external.hotels import search_hotels
    from tripwise.tools.external.places import build_places_tool
    from tripwise.tools.external.weather import get_weather
    from tripwise.tools.internal.context_analysis import analyze_user_context

    tools = [
        get_weather,
        get_country_info,
        convert_currency,
        search_flights,
        search_hotels,
        build_places_tool(settings.serpapi_key, settings.places_dev_mode),
        analyze_user_context,
    ]
    return ToolRegistry.from_tools(tools, timeout_s=settings.tool_timeout_s)
