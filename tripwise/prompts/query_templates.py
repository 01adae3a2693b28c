from tripwise.schema import QueryType

# Keyword lists drive coarse intent scoring; keywords longer than ten
# characters count double.
QUERY_KEYWORDS = {
    QueryType.DESTINATION: (
        "where should", "where can", "where to", "destination", "place to visit",
        "recommend a", "suggest a", "country", "city", "travel to", "trip to",
        "vacation in", "holiday in", "visit", "looking for somewhere",
    ),
    QueryType.PACKING: (
        "pack", "packing", "bring", "take", "luggage", "suitcase",
        "what to wear", "what should i wear", "clothes", "clothing",
        "gear", "essentials", "items", "stuff",
    ),
    QueryType.ATTRACTIONS: (
        "do in", "do at", "see in", "see at", "visit in", "attractions",
        "activities", "things to do", "sights", "itinerary", "places",
        "restaurants", "eat", "food", "nightlife", "fun", "entertainment",
        "must see", "best", "top", "recommended",
    ),
}

QUERY_MODE_ADDITIONS = {
    QueryType.DESTINATION: """DESTINATION RECOMMENDATION MODE
The user wants destination suggestions.
1. Lead with 1-2 specific destinations.
2. Explain why they fit the user's stated preferences.
3. Add practical details: when to go, rough daily budget, how to get there.
4. End with a next step or a question.
Name actual places, not regions. Respect stated constraints (budget, season, travel style).
If the traveler has NOT given a trip length, ask for it instead of assuming one.""",

    QueryType.PACKING: """PACKING GUIDANCE MODE
The user needs a packing list.
1. Start with a one-line strategy summary tied to the destination and weather.
2. Group items into 4-6 categories: Clothing, Footwear, Documents, Electronics, Toiletries, Miscellaneous.
3. Add 1-2 pro tips and mention what NOT to overpack.
Use current weather data when it is provided. Give practical quantities ("2-3 shirts"), not exhaustive lists.""",

    QueryType.ATTRACTIONS: """LOCAL ATTRACTIONS & ACTIVITIES MODE
The user wants to know what to do at a destination.
- For "things to do" or "what to see", give 4-6 specific recommendations grouped by neighborhood or theme.
- Only build a day-by-day plan when the user asks for an itinerary or gives a number of days.
For each pick say what it is, why it is special and one practical tip (timing, booking).
Mix famous sights with lesser-known spots, and mention food along the way.""",

    QueryType.GENERAL: """GENERAL CONVERSATION MODE
The message doesn't fit a specific travel query type.
- Travel-adjacent: answer naturally and offer the specific help you can give.
- Vague: help the user clarify what they need.
- Conversational: engage briefly and look for a way to add travel value.""",
}


def get_system_addition(query_type: QueryType) -> str:
    return QUERY_MODE_ADDITIONS.get(query_type, QUERY_MODE_ADDITIONS[QueryType.GENERAL])
