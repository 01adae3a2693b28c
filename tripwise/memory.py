import logging
from typing import Iterable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from tripwise.schema import Role, Turn

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 20


def turns_to_messages(turns: Iterable[Turn]) -> list[BaseMessage]:
    """Render turns as LangChain chat messages."""
    return [
        HumanMessage(content=turn.text) if turn.role == Role.HUMAN else AIMessage(content=turn.text)
        for turn in turns
    ]


class ConversationMemory:
    """Sliding window of completed turns for one conversation.

    Oldest turns are evicted first, so the latest exchange always survives.
    Only the orchestration loop writes to it, and only once a run finishes.
    """

    def __init__(self, window: int = DEFAULT_WINDOW):
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._turns: list[Turn] = []

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)
        overflow = len(self._turns) - self.window
        if overflow > 0:
            del self._turns[:overflow]
            logger.debug("Memory window full, evicted %d oldest turn(s)", overflow)

    def add_exchange(self, user_text: str, assistant_text: str) -> None:
        self.append(Turn(role=Role.HUMAN, text=user_text))
        self.append(Turn(role=Role.ASSISTANT, text=assistant_text))

    def history(self) -> list[Turn]:
        """A copy of the stored turns, oldest first."""
        return list(self._turns)

    def clear(self) -> None:
        self._turns = []

    def __len__(self) -> int:
        return len(self._turns)
