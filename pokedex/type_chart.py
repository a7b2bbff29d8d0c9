"""
Type effectiveness engine.

Holds the damage relation chart (Gen 6+ rules, 18 types) as a read-only,
module-level constant and derives how much damage each attacking type deals
to a defender with one or two types.

Only non-neutral relations are listed in the chart. A missing entry means
the attack is neutral (1×). Immunities are explicit zeros and are
respected as such, so a Ghost move against a Normal/Flying defender is 0×.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from pokedex.errors import ValidationError

TYPES: Tuple[str, ...] = (
    "normal",
    "fire",
    "water",
    "electric",
    "grass",
    "ice",
    "fighting",
    "poison",
    "ground",
    "flying",
    "psychic",
    "bug",
    "rock",
    "ghost",
    "dragon",
    "dark",
    "steel",
    "fairy",
)

# Attacker -> defender -> multiplier
_CHART: Dict[str, Dict[str, float]] = {
    "normal": {"rock": 0.5, "ghost": 0, "steel": 0.5},
    "fire": {
        "fire": 0.5,
        "water": 0.5,
        "grass": 2,
        "ice": 2,
        "bug": 2,
        "rock": 0.5,
        "dragon": 0.5,
        "steel": 2,
    },
    "water": {
        "fire": 2,
        "water": 0.5,
        "grass": 0.5,
        "ground": 2,
        "rock": 2,
        "dragon": 0.5,
    },
    "electric": {
        "water": 2,
        "electric": 0.5,
        "grass": 0.5,
        "ground": 0,
        "flying": 2,
        "dragon": 0.5,
    },
    "grass": {
        "fire": 0.5,
        "water": 2,
        "grass": 0.5,
        "poison": 0.5,
        "ground": 2,
        "flying": 0.5,
        "bug": 0.5,
        "rock": 2,
        "dragon": 0.5,
        "steel": 0.5,
    },
    "ice": {
        "fire": 0.5,
        "water": 0.5,
        "grass": 2,
        "ice": 0.5,
        "ground": 2,
        "flying": 2,
        "dragon": 2,
        "steel": 0.5,
    },
    "fighting": {
        "normal": 2,
        "ice": 2,
        "poison": 0.5,
        "flying": 0.5,
        "psychic": 0.5,
        "bug": 0.5,
        "rock": 2,
        "ghost": 0,
        "dark": 2,
        "steel": 2,
        "fairy": 0.5,
    },
    "poison": {
        "grass": 2,
        "poison": 0.5,
        "ground": 0.5,
        "rock": 0.5,
        "ghost": 0.5,
        "steel": 0,
        "fairy": 2,
    },
    "ground": {
        "fire": 2,
        "electric": 2,
        "grass": 0.5,
        "poison": 2,
        "flying": 0,
        "bug": 0.5,
        "rock": 2,
        "steel": 2,
    },
    "flying": {
        "electric": 0.5,
        "grass": 2,
        "fighting": 2,
        "bug": 2,
        "rock": 0.5,
        "steel": 0.5,
    },
    "psychic": {
        "fighting": 2,
        "poison": 2,
        "psychic": 0.5,
        "dark": 0,
        "steel": 0.5,
    },
    "bug": {
        "fire": 0.5,
        "grass": 2,
        "fighting": 0.5,
        "poison": 0.5,
        "flying": 0.5,
        "psychic": 2,
        "ghost": 0.5,
        "dark": 2,
        "steel": 0.5,
        "fairy": 0.5,
    },
    "rock": {
        "fire": 2,
        "ice": 2,
        "fighting": 0.5,
        "ground": 0.5,
        "flying": 2,
        "bug": 2,
        "steel": 0.5,
    },
    "ghost": {"normal": 0, "psychic": 2, "ghost": 2, "dark": 0.5},
    "dragon": {"dragon": 2, "steel": 0.5, "fairy": 0},
    "dark": {
        "fighting": 0.5,
        "psychic": 2,
        "ghost": 2,
        "dark": 0.5,
        "fairy": 0.5,
    },
    "steel": {
        "fire": 0.5,
        "water": 0.5,
        "electric": 0.5,
        "ice": 2,
        "rock": 2,
        "steel": 0.5,
        "fairy": 2,
    },
    "fairy": {
        "fire": 0.5,
        "fighting": 2,
        "poison": 0.5,
        "dragon": 2,
        "dark": 2,
        "steel": 0.5,
    },
}

DAMAGE_RELATIONS: Mapping[str, Mapping[str, float]] = MappingProxyType(
    {attacker: MappingProxyType(dict(_CHART.get(attacker, {}))) for attacker in TYPES}
)
del _CHART

# Display classes, strongest first
MULTIPLIER_CLASSES: Tuple[float, ...] = (4, 2, 1, 0.5, 0.25, 0)


def normalize_types(defender_types: Iterable[str]) -> Tuple[str, ...]:
    """
    Lowercase, de-duplicate and validate a defender's type list.

    Raises:
        ValidationError: If there are not 1 or 2 distinct types, or a type
            is not in `TYPES`.
    """
    normalized = tuple(dict.fromkeys(t.strip().lower() for t in defender_types))
    if not 1 <= len(normalized) <= 2:
        raise ValidationError(
            f"A defender has one or two types, got {len(normalized)}: {normalized}"
        )
    unknown = [t for t in normalized if t not in DAMAGE_RELATIONS]
    if unknown:
        raise ValidationError(f"Unknown type(s): {', '.join(unknown)}")
    return normalized


def multiplier(attacker: str, defender: str) -> float:
    """Single-type relation; 1 when the chart has no entry."""
    return DAMAGE_RELATIONS[attacker].get(defender, 1)


def effectiveness(defender_types: Iterable[str]) -> Dict[str, float]:
    """
    Damage multiplier of every attacking type against a defender.

    For each attacking type the multipliers against each of the defender's
    types are multiplied together, e.g. Ground vs Fire/Flying is 2 × 0 = 0.

    Args:
        defender_types: One or two type tokens, in any order.

    Returns:
        Mapping of every type in `TYPES` to its combined multiplier.
    """
    defenders = normalize_types(defender_types)

    result: Dict[str, float] = {}
    for attacker in TYPES:
        combined = 1.0
        for defender in defenders:
            combined *= multiplier(attacker, defender)
        result[attacker] = combined
    return result


def bucket_effectiveness(result: Mapping[str, float]) -> Dict[float, List[str]]:
    """
    Group an effectiveness result into the fixed display classes.

    Returns:
        `{4: [...], 2: [...], 1: [...], 0.5: [...], 0.25: [...], 0: [...]}`
        in that key order. Empty classes are kept as empty lists.
    """
    buckets: Dict[float, List[str]] = {value: [] for value in MULTIPLIER_CLASSES}
    for attacker, value in result.items():
        if value in buckets:
            buckets[value].append(attacker)
    return buckets


def weaknesses(defender_types: Iterable[str]) -> List[str]:
    """Attacking types that deal more than neutral damage."""
    return [t for t, value in effectiveness(defender_types).items() if value > 1]
