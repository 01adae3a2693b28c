import pytest
from langchain_core.messages import AIMessage, HumanMessage

from tripwise.memory import ConversationMemory, turns_to_messages
from tripwise.schema import Role, Turn


def test_window_keeps_newest_turns():
    memory = ConversationMemory(window=20)
    for i in range(1, 26):
        role = Role.HUMAN if i % 2 else Role.ASSISTANT
        memory.append(Turn(role=role, text=f"turn {i}"))

    turns = memory.history()
    assert len(turns) == 20
    assert turns[0].text == "turn 6"
    assert turns[-1].text == "turn 25"


def test_history_is_a_copy():
    memory = ConversationMemory()
    memory.add_exchange("hi", "hello")
    memory.history().clear()
    assert len(memory) == 2


def test_turns_to_messages_alternates_roles():
    memory = ConversationMemory()
    memory.add_exchange("Weather in Rome?", "Rome is 21°C.")
    messages = turns_to_messages(memory.history())
    assert isinstance(messages[0], HumanMessage)
    assert isinstance(messages[1], AIMessage)
    assert messages[1].content == "Rome is 21°C."


def test_clear():
    memory = ConversationMemory()
    memory.add_exchange("first", "answer one")
    memory.clear()
    assert len(memory) == 0
    assert memory.history() == []


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        ConversationMemory(window=0)
