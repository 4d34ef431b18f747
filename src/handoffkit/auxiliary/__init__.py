"""Auxiliary generators: chat titles and follow-up suggestions."""

from handoffkit.auxiliary.suggestions import (
    generate_suggestions,
    parse_suggestions,
    run_suggestion_generation,
)
from handoffkit.auxiliary.title import clean_title, generate_chat_title, run_title_generation

__all__ = [
    "clean_title",
    "generate_chat_title",
    "generate_suggestions",
    "parse_suggestions",
    "run_suggestion_generation",
    "run_title_generation",
]
