from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from tests.conftest import ScriptedChatModel
from tripwise.agent import APOLOGY, TravelReasoningAgent, followup_requests
from tripwise.middleware.event_collector import get_events
from tripwise.schema import AgentFailure, AgentReply, QueryType


def weather_for(temperature: int):
    def handler(args):
        return {"ok": True, "location": args["location"], "temperature": temperature, "condition": "Partly cloudy"}

    return handler


def failing_weather(args):
    raise RuntimeError(f"weather service down for {args['location']}")


class TestGroundedAnswers:
    def test_packing_question_uses_one_weather_call(self, settings, make_registry):
        model = ScriptedChatModel(["For Tokyo, expect around 12°C and partly cloudy skies. Pack light layers."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=weather_for(12)), settings=settings)

        result = agent.process_message("What should I pack for Tokyo in March?")

        assert isinstance(result, AgentReply)
        assert result.query_type == QueryType.PACKING
        assert [(t.tool_name, t.args) for t in result.tools_used] == [("get_weather", {"location": "Tokyo"})]
        assert result.steps == 2
        assert result.corrected_domains == []
        assert "12°C" in result.content

        [prompt] = model.calls
        assert isinstance(prompt[0], SystemMessage)
        assert "PACKING GUIDANCE MODE" in prompt[0].content
        assert "Tool get_weather was executed" in prompt[0].content
        assert '"temperature": 12' in prompt[0].content
        assert prompt[-1] == HumanMessage(content="What should I pack for Tokyo in March?")

    def test_tool_failure_is_reported_to_the_model(self, settings, make_registry):
        def unsupported(args):
            raise ValueError(f"Unsupported currency code '{args['to_currency']}'.")

        model = ScriptedChatModel(["I couldn't convert to ZZZ, it doesn't look like a currency I can find."])
        agent = TravelReasoningAgent(model, make_registry(convert_currency=unsupported), settings=settings)

        result = agent.process_message("Convert 100 USD to ZZZ")

        assert result.success
        [inv] = result.tools_used
        assert not inv.succeeded
        assert inv.args == {"amount": 100.0, "from_currency": "USD", "to_currency": "ZZZ"}
        system = model.calls[0][0].content
        assert "Tool convert_currency failed with error: Unsupported currency code 'ZZZ'." in system

    def test_no_tools_no_tool_notice(self, settings, make_registry):
        model = ScriptedChatModel(["Hi! Where are you thinking of going?"])
        agent = TravelReasoningAgent(model, make_registry(), settings=settings)

        result = agent.process_message("Hello!")

        assert result.tools_used == []
        assert result.steps == 1
        assert "TOOL RESULTS FOR THIS MESSAGE" not in model.calls[0][0].content


class TestCorrection:
    def test_single_correction_per_domain(self, settings, make_registry):
        model = ScriptedChatModel(["It's chilly, bring a coat.", "Still chilly, bring a coat."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=weather_for(5)), settings=settings)

        result = agent.process_message("What's the weather in Berlin?")

        assert len(model.calls) == 2
        assert result.content == "Still chilly, bring a coat."
        assert result.corrected_domains == ["weather"]

        retry = model.calls[1]
        assert retry[-2] == AIMessage(content="It's chilly, bring a coat.")
        assert retry[-1].content.startswith("[SYSTEM: Your previous response did not match")
        assert "Berlin" in retry[-1].content
        assert sum(isinstance(m, SystemMessage) for m in retry) == 1
        assert any(e["status"] == "retrying" for e in get_events())

    def test_corrected_answer_is_accepted(self, settings, make_registry):
        model = ScriptedChatModel(["It's chilly.", "Berlin is 5°C and partly cloudy."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=weather_for(5)), settings=settings)

        result = agent.process_message("What's the weather in Berlin?")

        assert result.content == "Berlin is 5°C and partly cloudy."
        assert result.steps == 3


class TestFollowups:
    def test_marker_sentences(self):
        draft = "Rome is great in spring. Let me check the weather in Rome. Bring good shoes!"
        assert followup_requests(draft) == ["Let me check the weather in Rome."]

    def test_followup_runs_new_tool_and_rewrites(self, settings, make_registry):
        model = ScriptedChatModel(["Let me check the weather in Rome.", "Rome is 21°C, perfect for walking."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=weather_for(21)), settings=settings)

        result = agent.process_message("Is Italy nice in spring?")

        assert result.followup_iterations == 1
        assert [t.args for t in result.tools_used] == [{"location": "Rome"}]
        assert result.content == "Rome is 21°C, perfect for walking."
        assert "Tool get_weather was executed" in model.calls[1][0].content
        assert model.calls[1][-1].content.startswith("[SYSTEM: The data you said you would check")

    def test_followup_budget_is_bounded(self, settings, make_registry):
        model = ScriptedChatModel([
            "Let me check the weather in Rome.",
            "Let me check the weather in Paris.",
            "Let me check the weather in Madrid.",
            "Let me check the weather in Vienna.",
            "Let me check the weather in Prague.",
        ])
        agent = TravelReasoningAgent(model, make_registry(get_weather=failing_weather), settings=settings)

        result = agent.process_message("Hello!")

        assert result.followup_iterations == 3
        assert [t.args["location"] for t in result.tools_used] == ["Rome", "Paris", "Madrid"]
        assert len(model.calls) == 4
        assert result.content == "Let me check the weather in Vienna."

    def test_already_run_calls_are_not_repeated(self, settings, make_registry):
        model = ScriptedChatModel(["Let me check the weather in Rome.", "Let me check the weather in Rome."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=failing_weather), settings=settings)

        result = agent.process_message("Hello!")

        assert result.followup_iterations == 1
        assert len(result.tools_used) == 1
        assert len(model.calls) == 2


class TestMemory:
    def test_history_feeds_the_next_message(self, settings, make_registry):
        model = ScriptedChatModel(["Lisbon is a great choice!", "Lisbon is 18°C right now."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=weather_for(18)), settings=settings)

        agent.process_message("I'm planning a trip to Lisbon")
        result = agent.process_message("What's the weather like there?")

        assert result.tools_used[0].args == {"location": "Lisbon"}
        second_prompt = model.calls[1]
        assert second_prompt[1] == HumanMessage(content="I'm planning a trip to Lisbon")
        assert second_prompt[2] == AIMessage(content="Lisbon is a great choice!")
        assert agent.get_history()[-1] == {"role": "assistant", "content": "Lisbon is 18°C right now."}

    def test_clear_during_run_keeps_that_runs_history(self, settings, make_registry):
        agents = []

        def clearing_weather(args):
            agents[0].clear_history()
            return {"ok": True, "location": args["location"], "temperature": 18}

        model = ScriptedChatModel(["Lisbon is a great choice!", "Lisbon is 18°C right now."])
        agent = TravelReasoningAgent(model, make_registry(get_weather=clearing_weather), settings=settings)
        agents.append(agent)

        agent.process_message("I'm planning a trip to Lisbon")
        agent.process_message("What's the weather like there?")

        second_prompt = model.calls[1]
        assert [type(m) for m in second_prompt] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert second_prompt[1] == HumanMessage(content="I'm planning a trip to Lisbon")
        assert [m["content"] for m in agent.get_history()] == [
            "What's the weather like there?",
            "Lisbon is 18°C right now.",
        ]

    def test_model_failure_leaves_memory_untouched(self, settings, make_registry):
        model = ScriptedChatModel(["Hello, traveler!", RuntimeError("quota exceeded")])
        agent = TravelReasoningAgent(model, make_registry(), settings=settings)

        agent.process_message("Hi")
        result = agent.process_message("Hi again")

        assert isinstance(result, AgentFailure)
        assert result.error == APOLOGY
        assert result.details == "quota exceeded"
        assert len(agent.memory) == 2

    def test_empty_draft_gets_fallback(self, settings, make_registry):
        agent = TravelReasoningAgent(ScriptedChatModel(["   "]), make_registry(), settings=settings)
        result = agent.process_message("Hello!")
        assert result.content.startswith("I'm having trouble")

    def test_clear_history_and_stats(self, settings, make_registry):
        agent = TravelReasoningAgent(ScriptedChatModel(["Hi!"]), make_registry(), settings=settings)
        agent.process_message("Hello!")
        agent.clear_history()
        assert agent.get_history() == []
        stats = agent.get_stats()
        assert stats["memory_window"] == settings.memory_window
        assert stats["model"] == settings.llm_model
