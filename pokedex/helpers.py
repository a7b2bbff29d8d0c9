"""
Helper functions for formatting entity data for display.

This module contains utility functions to:
- Produce display names from API tokens.
- Convert heights and weights from API units into metric and imperial text.
- Extract readable flavor text from species descriptions.
- Summarize and compare base stats.
"""

import math
from typing import Dict, Optional, Sequence, Tuple

from pokedex.constants import (
    FEET_PER_METRE,
    FLAVOR_TEXT_LANGUAGE,
    MAX_BASE_STAT,
    POUNDS_PER_KILOGRAM,
    STAT_DISPLAY_NAMES,
)
from pokedex.models import EntityDetail, SpeciesDescription, Stat


def capitalize_pokemon_name(name: str) -> str:
    """
    Properly capitalize Pokemon names with special handling for forms.

    Handles hyphens generally (e.g., 'landorus-therian' -> 'Landorus-Therian')
    and maps specific edge cases like 'Ho-Oh' or 'Type: Null' manually.

    Args:
        name: Pokemon name (e.g., 'garchomp', 'landorus-therian').

    Returns:
        Properly formatted display name.
    """
    special_cases = {
        "nidoran-f": "Nidoran♀",
        "nidoran-m": "Nidoran♂",
        "mr-mime": "Mr. Mime",
        "mime-jr": "Mime Jr.",
        "type-null": "Type: Null",
        "ho-oh": "Ho-Oh",
        "porygon-z": "Porygon-Z",
        "farfetchd": "Farfetch'd",
    }

    name_lower = name.lower()
    if name_lower in special_cases:
        return special_cases[name_lower]

    return "-".join(part.capitalize() for part in name.split("-"))


def format_height(height: Optional[int]) -> str:
    """
    Format a height given in decimetres.

    Example: 7 -> "0.7m (2'4\")".
    """
    if not height:
        return "Unknown"
    metres = height / 10
    total_feet = metres * FEET_PER_METRE
    feet = math.floor(total_feet)
    inches = round((total_feet - feet) * 12)
    if inches == 12:
        feet, inches = feet + 1, 0
    return f"{metres:.1f}m ({feet}'{inches}\")"


def format_weight(weight: Optional[int]) -> str:
    """
    Format a weight given in hectograms.

    Example: 69 -> "6.9kg (15.2lbs)".
    """
    if not weight:
        return "Unknown"
    kilograms = weight / 10
    pounds = kilograms * POUNDS_PER_KILOGRAM
    return f"{kilograms:.1f}kg ({pounds:.1f}lbs)"


def flavor_text(
    species: SpeciesDescription, language: str = FLAVOR_TEXT_LANGUAGE
) -> Optional[str]:
    """
    Return the species description in `language`, cleaned for display.

    PokeAPI flavor text carries the game's hard line breaks and form feeds;
    these are collapsed into single spaces.
    """
    text = species.flavor_text.get(language)
    if text is None:
        return None
    return " ".join(text.replace("\f", " ").split())


def stat_display_name(stat_name: str) -> str:
    return STAT_DISPLAY_NAMES.get(stat_name, stat_name)


def stat_total(stats: Sequence[Stat]) -> int:
    """Sum of base stats (the "BST")."""
    return sum(stat.base_value for stat in stats)


def stat_bar_percent(base_value: int) -> float:
    """Bar width for a stat, as a percentage of the maximum base stat."""
    return min(100.0, base_value / MAX_BASE_STAT * 100)


def compare_stats(
    first: EntityDetail, second: EntityDetail
) -> Dict[str, Tuple[Optional[int], Optional[int]]]:
    """
    Pair up two entities' base stats by stat name.

    Stats are listed in the first entity's order, followed by any stats only
    the second entity has.

    Returns:
        Mapping of display name to `(first_value, second_value)`; a side is
        None when that entity lacks the stat.
    """
    first_values = {stat.name: stat.base_value for stat in first.stats}
    second_values = {stat.name: stat.base_value for stat in second.stats}

    names = list(first_values)
    names.extend(name for name in second_values if name not in first_values)

    return {
        stat_display_name(name): (first_values.get(name), second_values.get(name))
        for name in names
    }
