"""The travel reasoning agent.

One ``TravelReasoningAgent`` serves one conversation. Each user message runs
through a compiled LangGraph state machine:

    classify -> execute_tools -> synthesize -> validate -+-> correct -> synthesize ...
                     ^                                   |
                     |                                   +-> explore_followups -+-> finalize
                     +------------------ new follow-up tools -------------------+

Corrections are bounded to one per validation domain per run and follow-up
exploration to ``max_followup_iterations`` rounds, so every run terminates.
"""

import json
import logging
import re
import time
from typing import Any, Optional, TypedDict

from langchain.chat_models import init_chat_model
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langgraph.graph import END, START, StateGraph

from tripwise.config import Settings, get_settings
from tripwise.memory import ConversationMemory, turns_to_messages
from tripwise.middleware.event_collector import emit_event
from tripwise.middleware.hallucination_guardrail import ResponseValidator
from tripwise.middleware.intent import identify_query_type, is_off_topic, is_vague_query
from tripwise.middleware.tool_selector import detect_required_tools
from tripwise.prompts.correction_prompt import build_correction_message
from tripwise.prompts.query_templates import get_system_addition
from tripwise.prompts.system_prompt import (
    CLARIFICATION_PROMPT,
    OFF_TOPIC_PROMPT,
    STRICT_GROUNDING_PROMPT,
    SYSTEM_PROMPT,
    TOOL_NOTICE_HEADER,
)
from tripwise.schema import (
    AgentFailure,
    AgentReply,
    AgentResult,
    QueryType,
    ToolCall,
    ToolFailure,
    ToolInvocation,
    Turn,
    Violation,
)
from tripwise.tools.registry import ToolRegistry, build_default_registry

logger = logging.getLogger(__name__)

APOLOGY = "I encountered an issue processing your request. Could you try rephrasing that?"
EMPTY_DRAFT_FALLBACK = "I'm having trouble formulating a response. Could you rephrase your question?"
GRAPH_RECURSION_LIMIT = 100

FOLLOWUP_MARKER = re.compile(
    r"\b(?:let me (?:check|get|look up|find|see|pull up)"
    r"|I should (?:check|look up|get|find)"
    r"|I(?:'ll| will) (?:check|look up|get|find|pull up)"
    r"|I need to (?:check|look up))\b",
    re.I,
)
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?\n])\s+")


def _extract_text(content) -> str:
    """Extract plain text from a content field that may be a string or a list of blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "\n".join(parts)
    return str(content)


def followup_requests(draft: str) -> list[str]:
    """Sentences of *draft* in which the model announces it will look something up."""
    return [s for s in _SENTENCE_SPLIT.split(draft) if FOLLOWUP_MARKER.search(s)]


def format_tool_notice(invocation: ToolInvocation) -> str:
    if isinstance(invocation.result, ToolFailure):
        return f"Tool {invocation.tool_name} failed with error: {invocation.result.reason}"
    return (
        f"Tool {invocation.tool_name} was executed with arguments {json.dumps(invocation.args)} "
        f"and returned:\n{json.dumps(invocation.payload, indent=2, ensure_ascii=False)}"
    )


def build_system_context(query_type: QueryType, user_message: str, invocations: list[ToolInvocation]) -> str:
    """The single system message: base prompt, query mode, hints and tool notices."""
    parts = [SYSTEM_PROMPT, get_system_addition(query_type)]
    if is_vague_query(user_message):
        parts.append(CLARIFICATION_PROMPT)
    if is_off_topic(user_message):
        parts.append(OFF_TOPIC_PROMPT)
    if invocations:
        notices = "\n\n".join(format_tool_notice(inv) for inv in invocations)
        executed = ", ".join(dict.fromkeys(inv.tool_name for inv in invocations))
        parts.append(f"{TOOL_NOTICE_HEADER}\n\n{notices}")
        parts.append(f"{STRICT_GROUNDING_PROMPT}\nTools executed: {executed}")
    return "\n\n".join(parts)


class RunState(TypedDict, total=False):
    """Everything one ``process_message`` call carries between graph nodes."""

    user_message: str
    history: list[Turn]
    query_type: QueryType
    pending_calls: list[ToolCall]
    invocations: list[ToolInvocation]
    continuation: list[BaseMessage]
    draft: str
    steps: int
    violations: list[Violation]
    corrected_domains: list[str]
    followup_iterations: int
    final_answer: str


class TravelReasoningAgent:
    """Orchestrates tool routing, LLM synthesis and answer validation for one conversation.

    The model is any object with ``invoke(messages) -> AIMessage``.
    """

    def __init__(
        self,
        model,
        registry: ToolRegistry,
        memory: Optional[ConversationMemory] = None,
        settings: Optional[Settings] = None,
        validator: Optional[ResponseValidator] = None,
    ):
        self.settings = settings or Settings()
        self.model = model
        self.registry = registry
        self.memory = memory or ConversationMemory(window=self.settings.memory_window)
        self.validator = validator or ResponseValidator()
        self.graph = self._build_graph()

    # ── Public API ──────────────────────────────────────────────────────────

    def process_message(self, user_text: str) -> AgentResult:
        started = time.perf_counter()
        initial: RunState = {
            "user_message": user_text,
            "history": self.memory.history(),
            "invocations": [],
            "continuation": [],
            "steps": 0,
            "violations": [],
            "corrected_domains": [],
            "followup_iterations": 0,
        }
        try:
            state = self.graph.invoke(initial, config={"recursion_limit": GRAPH_RECURSION_LIMIT})
        except Exception as e:
            logger.exception("Agent run failed")
            emit_event(source="agent", status="error", message="Run failed, returning apology", details={"error": str(e)})
            return AgentFailure(error=APOLOGY, details=str(e) or type(e).__name__)

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Run finished in %.0fms: %d step(s), tools=%s, corrected=%s",
            duration_ms, state["steps"], [inv.tool_name for inv in state["invocations"]],
            state["corrected_domains"],
        )
        return AgentReply(
            content=state["final_answer"],
            query_type=state["query_type"],
            tools_used=state["invocations"],
            steps=state["steps"],
            duration_ms=round(duration_ms, 2),
            corrected_domains=state["corrected_domains"],
            followup_iterations=state["followup_iterations"],
        )

    def get_history(self) -> list[dict[str, str]]:
        return [{"role": turn.role.value, "content": turn.text} for turn in self.memory.history()]

    def clear_history(self) -> None:
        self.memory.clear()
        logger.info("Conversation memory cleared")

    def get_stats(self) -> dict[str, Any]:
        return {
            "model": self.settings.llm_model,
            "temperature": self.settings.llm_temperature,
            "tools_available": len(self.registry),
            "tools": self.registry.names,
            "memory_window": self.memory.window,
            "history_turns": len(self.memory),
        }

    # ── Graph ───────────────────────────────────────────────────────────────

    def _build_graph(self):
        graph = StateGraph(RunState)
        graph.add_node("classify", self._classify)
        graph.add_node("execute_tools", self._execute_tools)
        graph.add_node("synthesize", self._synthesize)
        graph.add_node("validate", self._validate)
        graph.add_node("correct", self._correct)
        graph.add_node("explore_followups", self._explore_followups)
        graph.add_node("finalize", self._finalize)

        graph.add_edge(START, "classify")
        graph.add_edge("classify", "execute_tools")
        graph.add_edge("execute_tools", "synthesize")
        graph.add_edge("synthesize", "validate")
        graph.add_conditional_edges(
            "validate",
            lambda state: "correct" if state["violations"] else "explore_followups",
            {"correct": "correct", "explore_followups": "explore_followups"},
        )
        graph.add_edge("correct", "synthesize")
        graph.add_conditional_edges(
            "explore_followups",
            lambda state: "execute_tools" if state.get("pending_calls") else "finalize",
            {"execute_tools": "execute_tools", "finalize": "finalize"},
        )
        graph.add_edge("finalize", END)
        return graph.compile()

    def _classify(self, state: RunState) -> dict:
        message = state["user_message"]
        query_type = identify_query_type(message)
        calls = detect_required_tools(
            message,
            state["history"],
            default_origin=self.settings.default_origin_city or None,
            history_depth=self.settings.history_depth,
        )
        logger.info("Classified message as %s, %d tool(s) required", query_type.value, len(calls))
        emit_event(
            source="tool_selector",
            status="success",
            message=f"Scheduled {len(calls)} tool(s)",
            details={"query_type": query_type.value, "tools": [c.name for c in calls]},
        )
        return {"query_type": query_type, "pending_calls": calls}

    def _execute_tools(self, state: RunState) -> dict:
        calls = state.get("pending_calls") or []
        if not calls:
            return {"pending_calls": []}

        invocations = self.registry.execute_many(calls)
        for inv in invocations:
            emit_event(
                source="tool_registry",
                status="success" if inv.succeeded else "failed",
                message=f"{inv.tool_name} {'succeeded' if inv.succeeded else 'failed'}",
                details={"args": inv.args, "duration_ms": inv.duration_ms}
                | ({} if inv.succeeded else {"error": inv.result.reason}),
            )
        return {
            "pending_calls": [],
            "invocations": state["invocations"] + invocations,
            "steps": state["steps"] + 1,
        }

    def _synthesize(self, state: RunState) -> dict:
        system = build_system_context(state["query_type"], state["user_message"], state["invocations"])
        messages = [
            SystemMessage(content=system),
            *turns_to_messages(state["history"]),
            HumanMessage(content=state["user_message"]),
            *state["continuation"],
        ]
        logger.info("Invoking model with %d message(s)", len(messages))
        response = self.model.invoke(messages)
        draft = _extract_text(response.content).strip()
        return {"draft": draft, "steps": state["steps"] + 1}

    def _validate(self, state: RunState) -> dict:
        violations = self.validator.validate(
            state["invocations"], state["draft"], skip_domains=state["corrected_domains"]
        )
        if violations:
            emit_event(
                source="response_validator",
                status="violation",
                message=f"Draft contradicts tool data: {', '.join(v.domain for v in violations)}",
                details={v.domain: v.reason for v in violations},
            )
        elif state["invocations"]:
            emit_event(source="response_validator", status="passed", message="Draft is consistent with tool data")
        return {"violations": violations}

    def _correct(self, state: RunState) -> dict:
        violations = state["violations"]
        domains = [v.domain for v in violations]
        logger.info("Requesting one corrected draft for: %s", domains)
        emit_event(
            source="response_validator",
            status="retrying",
            message="Re-invoking model with correction instructions",
            details={"domains": domains},
        )
        correction = build_correction_message([v.correction for v in violations])
        return {
            "continuation": state["continuation"] + [
                AIMessage(content=state["draft"]),
                HumanMessage(content=correction),
            ],
            "corrected_domains": state["corrected_domains"] + domains,
            "violations": [],
        }

    def _explore_followups(self, state: RunState) -> dict:
        iterations = state["followup_iterations"]
        if iterations >= self.settings.max_followup_iterations:
            logger.info("Follow-up budget exhausted (%d)", iterations)
            return {"pending_calls": []}

        requests = followup_requests(state["draft"])
        if not requests:
            return {"pending_calls": []}

        already_run = {ToolCall(name=inv.tool_name, args=inv.args).key() for inv in state["invocations"]}
        calls = []
        for call in detect_required_tools(" ".join(requests), default_origin=None):
            if call.key() not in already_run and call.name in self.registry:
                calls.append(call)
                already_run.add(call.key())
        if not calls:
            logger.info("Follow-up marker found but no new tool resolved")
            return {"pending_calls": []}

        names = [c.name for c in calls]
        logger.info("Follow-up iteration %d: running %s", iterations + 1, names)
        emit_event(
            source="followup_explorer",
            status="running",
            message=f"Draft asked for more data, running {', '.join(names)}",
            details={"iteration": iterations + 1, "calls": [c.model_dump() for c in calls]},
        )
        instruction = (
            "[SYSTEM: The data you said you would check has now been retrieved and is listed "
            f"in the tool results ({', '.join(names)}). Rewrite your full answer to the user's last "
            "message using it. Do not say you will check anything else.]"
        )
        return {
            "pending_calls": calls,
            "followup_iterations": iterations + 1,
            "continuation": state["continuation"] + [
                AIMessage(content=state["draft"]),
                HumanMessage(content=instruction),
            ],
        }

    def _finalize(self, state: RunState) -> dict:
        answer = state["draft"] or EMPTY_DRAFT_FALLBACK
        self.memory.add_exchange(state["user_message"], answer)
        return {"final_answer": answer}


def build_agent(
    settings: Optional[Settings] = None,
    *,
    model=None,
    registry: Optional[ToolRegistry] = None,
) -> TravelReasoningAgent:
    """Wire an agent with the configured chat model and the default tool catalogue."""
    settings = settings or get_settings()
    if model is None:
        model = init_chat_model(settings.llm_model, temperature=settings.llm_temperature)
    return TravelReasoningAgent(
        model=model,
        registry=registry or build_default_registry(settings),
        memory=ConversationMemory(window=settings.memory_window),
        settings=settings,
    )
