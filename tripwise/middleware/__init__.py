from tripwise.middleware.hallucination_guardrail import ResponseValidator, ValidationRule
from tripwise.middleware.intent import identify_query_type, is_off_topic, is_vague_query
from tripwise.middleware.tool_selector import detect_required_tools

__all__ = [
    "ResponseValidator",
    "ValidationRule",
    "identify_query_type",
    "is_off_topic",
    "is_vague_query",
    "detect_required_tools",
]
