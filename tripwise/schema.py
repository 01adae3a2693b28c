"""Core data types shared by the extraction, tool and orchestration layers."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    HUMAN = "human"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """One side of a completed exchange. Frozen once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    timestamp: datetime = Field(default_factory=_utcnow)


class QueryType(str, Enum):
    """Coarse intent categories, in tie-break order. ``GENERAL`` is the catch-all."""

    DESTINATION = "destination"
    PACKING = "packing"
    ATTRACTIONS = "attractions"
    GENERAL = "general"


# ── Entities ────────────────────────────────────────────────────────────────


class EntityKind(str, Enum):
    LOCATION = "location"
    CURRENCY_PAIR = "currency_pair"
    CITY_PAIR = "city_pair"
    AMOUNT = "amount"


class CurrencyPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_currency: str
    to_currency: str


class CityPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: str
    destination: str


class ExtractedEntity(BaseModel):
    """A value pulled out of free text, tagged with where it was found.

    ``source`` is ``"current-message"`` or ``"history-turn-N"`` where N counts
    Human turns back from the newest (1 = most recent).
    """

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    value: Union[str, float, CurrencyPair, CityPair]
    source: str = "current-message"

    @property
    def from_history(self) -> bool:
        return self.source != "current-message"


# ── Tool results ────────────────────────────────────────────────────────────


class ToolSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    payload: dict[str, Any] = Field(default_factory=dict)


class ToolFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    reason: str


ToolResult = Annotated[Union[ToolSuccess, ToolFailure], Field(discriminator="kind")]


class ToolCall(BaseModel):
    """A scheduled tool run: the tool's registered name plus its arguments."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    reasoning: Optional[str] = None

    def key(self) -> tuple[str, str]:
        """Identity used to avoid running the same call twice in one run."""
        return self.name, repr(sorted(self.args.items()))


class ToolInvocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: ToolResult
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return isinstance(self.result, ToolSuccess)

    @property
    def payload(self) -> dict[str, Any]:
        return self.result.payload if isinstance(self.result, ToolSuccess) else {}


# ── Validation ──────────────────────────────────────────────────────────────


class Violation(BaseModel):
    """A detected mismatch between a draft answer and what a tool actually returned."""

    model_config = ConfigDict(frozen=True)

    domain: str
    reason: str
    correction: str


# ── Agent output ────────────────────────────────────────────────────────────


class AgentReply(BaseModel):
    success: Literal[True] = True
    content: str
    query_type: QueryType = QueryType.GENERAL
    tools_used: list[ToolInvocation] = Field(default_factory=list)
    steps: int = 0
    duration_ms: float = 0.0
    corrected_domains: list[str] = Field(default_factory=list)
    followup_iterations: int = 0
    timestamp: datetime = Field(default_factory=_utcnow)


class AgentFailure(BaseModel):
    success: Literal[False] = False
    error: str
    details: str = ""


AgentResult = Union[AgentReply, AgentFailure]
