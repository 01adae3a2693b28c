import pytest

from tripwise.extraction import (
    detect_budget_level,
    detect_place_type,
    extract_amount,
    extract_city_pair,
    extract_city_pair_from_history,
    extract_currency_codes,
    extract_currency_pair,
    extract_currency_pair_from_history,
    extract_location,
    extract_location_from_history,
    normalize_location,
    recent_human_turns,
    resolve_travel_hub,
)
from tripwise.schema import CityPair, CurrencyPair, Role, Turn


def human(text: str) -> Turn:
    return Turn(role=Role.HUMAN, text=text)


def assistant(text: str) -> Turn:
    return Turn(role=Role.ASSISTANT, text=text)


class TestLocation:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("What should I pack for Tokyo in March?", "Tokyo"),
            ("What's the weather in Berlin?", "Berlin"),
            ("I'm planning a trip to Lisbon", "Lisbon"),
            ("We are thinking of visiting New York next spring", "New York"),
            ("Any good restaurants in Rome?", "Rome"),
            ("hotels in barcelona please", "Barcelona"),
        ],
    )
    def test_extracts_place_name(self, message, expected):
        assert extract_location(message) == expected

    def test_nothing_to_find(self):
        assert extract_location("What's the weather like there?") is None
        assert extract_location("") is None

    def test_normalized_value_is_stable(self):
        location = extract_location("Things to do in Buenos Aires this weekend?")
        assert location == "Buenos Aires"
        assert normalize_location(location) == location

    def test_rejects_filler_only_candidates(self):
        assert normalize_location("my trip") is None
        assert normalize_location("Lisbon and Porto") == "Lisbon"

    def test_country_resolves_to_hub(self):
        assert resolve_travel_hub("Japan") == "Tokyo"
        assert resolve_travel_hub("Lisbon") == "Lisbon"


class TestCityPair:
    def test_from_to(self):
        assert extract_city_pair("Find flights from London to Paris") == CityPair(origin="London", destination="Paris")

    def test_to_from(self):
        assert extract_city_pair("flights to Rome from Berlin") == CityPair(origin="Berlin", destination="Rome")

    def test_default_origin_for_bare_destination(self):
        assert extract_city_pair("I want to fly to Athens") is None
        assert extract_city_pair("I want to fly to Athens", default_origin="Tel Aviv") == CityPair(
            origin="Tel Aviv", destination="Athens"
        )

    def test_same_city_is_not_a_route(self):
        assert extract_city_pair("from Paris to Paris") is None

    def test_destination_now_origin_from_history(self):
        history = [human("I usually travel from Madrid."), assistant("Nice!")]
        entity = extract_city_pair_from_history("Can I fly to Vienna?", history)
        assert entity.value == CityPair(origin="Madrid", destination="Vienna")
        assert entity.from_history


class TestCurrency:
    def test_codes_symbols_and_names(self):
        assert extract_currency_codes("How much is $50 in euros?") == ["USD", "EUR"]
        assert extract_currency_codes("Convert 200 GBP to JPY") == ["GBP", "JPY"]

    def test_unknown_code_after_to(self):
        assert extract_currency_pair("Convert 100 USD to ZZZ") == CurrencyPair(from_currency="USD", to_currency="ZZZ")

    def test_country_abbreviation_is_not_a_currency(self):
        assert extract_currency_codes("Flying to the USA with 100 EUR") == ["EUR"]

    def test_single_currency_defaults(self):
        assert extract_currency_pair("How much is 30 pounds?") == CurrencyPair(from_currency="GBP", to_currency="EUR")
        assert extract_currency_pair("I have 30 euros") == CurrencyPair(from_currency="EUR", to_currency="USD")

    def test_no_currency(self):
        assert extract_currency_pair("What should I pack?") is None


class TestAmount:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Convert $1,250.50 to euros", 1250.50),
            ("How much is 300 shekels in dollars?", 300.0),
            ("what about 75?", 75.0),
        ],
    )
    def test_amount_tiers(self, message, expected):
        assert extract_amount(message) == expected

    def test_durations_are_not_amounts(self):
        assert extract_amount("A 5 days trip with 2 kids") is None


class TestClassifiers:
    def test_place_type(self):
        assert detect_place_type("Where can we eat well?") == "restaurants"
        assert detect_place_type("Any good museums?") == "museums"
        assert detect_place_type("What is there in Oslo?") == "attractions"

    def test_budget_level(self):
        assert detect_budget_level("cheap hostel please") == "budget"
        assert detect_budget_level("a luxury stay") == "luxury"
        assert detect_budget_level("any hotel") is None


class TestHistoryFallback:
    def test_current_message_wins(self):
        history = [human("I'm planning a trip to Lisbon")]
        entity = extract_location_from_history("Weather in Oslo?", history)
        assert entity.value == "Oslo"
        assert entity.source == "current-message"

    def test_falls_back_to_recent_human_turn(self):
        history = [
            human("I'm planning a trip to Lisbon"),
            assistant("Lisbon is lovely, though many people prefer Paris."),
        ]
        entity = extract_location_from_history("What's the weather like there?", history)
        assert entity.value == "Lisbon"
        assert entity.source == "history-turn-1"

    def test_assistant_turns_are_never_scanned(self):
        history = [human("hello"), assistant("Have you considered Paris?")]
        assert extract_location_from_history("What's the weather like there?", history) is None

    def test_depth_limit(self):
        history = [human("I'm planning a trip to Lisbon")] + [human("ok") for _ in range(6)]
        assert extract_location_from_history("weather there?", history, depth=6) is None
        assert extract_location_from_history("weather there?", history, depth=7).value == "Lisbon"

    def test_currency_pair_from_history(self):
        history = [human("Convert 100 USD to EUR")]
        entity = extract_currency_pair_from_history("and 250?", history)
        assert entity.value == CurrencyPair(from_currency="USD", to_currency="EUR")
        assert entity.source == "history-turn-1"

    def test_recent_human_turns_newest_first(self):
        history = [human("one"), assistant("a"), human("two"), assistant("b")]
        assert [t.text for t in recent_human_turns(history)] == ["two", "one"]
