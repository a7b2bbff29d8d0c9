"""
Input validation and sanitization functions.

This module ensures that caller input conforms to expected formats before it
reaches the gateway or the roster store: search terms are normalized,
generations and types are checked against the known vocabulary, and slot
indexes are bounds-checked.
"""

from typing import Iterable, Optional, Tuple

from config.settings import MAX_GENERATION, ROSTER_SIZE
from pokedex.constants import (
    ERROR_INVALID_GENERATION,
    ERROR_INVALID_TYPE,
    MAX_ROSTER_NAME_LENGTH,
    MAX_SEARCH_TERM_LENGTH,
)
from pokedex.type_chart import TYPES


def sanitize_search_term(text: Optional[str]) -> str:
    """
    Normalize a free-text search term.

    Strips surrounding whitespace, lowercases, truncates to
    `MAX_SEARCH_TERM_LENGTH`, and drops characters that never appear in
    entity names (keeping letters, digits, hyphens, spaces and the few
    punctuation marks used by names like "mr. mime" or "farfetch'd").

    Args:
        text: Raw input, possibly None.

    Returns:
        Sanitized term; empty string means "no search filter".
    """
    if not text:
        return ""

    text = text.strip().lower()[:MAX_SEARCH_TERM_LENGTH]
    return "".join(c for c in text if c.isalnum() or c in "-_ .':♀♂")


def validate_generation(generation: Optional[int]) -> Tuple[bool, Optional[str]]:
    """
    Validate a generation number.

    Args:
        generation: 1 through MAX_GENERATION, or None for "no filter".

    Returns:
        Tuple containing (is_valid, error_message).
    """
    if generation is None:
        return True, None

    if (
        isinstance(generation, bool)
        or not isinstance(generation, int)
        or not 1 <= generation <= MAX_GENERATION
    ):
        return False, ERROR_INVALID_GENERATION.format(max_generation=MAX_GENERATION)

    return True, None


def validate_types(types: Iterable[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that every selected type is part of the type vocabulary.

    Returns:
        Tuple containing (is_valid, error_message).
    """
    for type_name in types:
        if type_name not in TYPES:
            return False, ERROR_INVALID_TYPE.format(type_name=type_name)
    return True, None


def validate_slot_index(index: int, size: int = ROSTER_SIZE) -> None:
    """
    Bounds-check a roster slot index (or a saved-roster index, with `size`).

    Raises:
        IndexError: If index is not in range(size). Negative indexes are
            rejected rather than counted from the end.
    """
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < size:
        raise IndexError(f"Index {index!r} out of range for {size} entries")


def normalize_roster_name(name: Optional[str], default: str) -> str:
    """Trim a roster name, falling back to `default` when blank."""
    name = (name or "").strip()[:MAX_ROSTER_NAME_LENGTH]
    return name or default
