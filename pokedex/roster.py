"""
Team rosters: the editable current team, saved team snapshots, and team
composition statistics.

A roster always has exactly `ROSTER_SIZE` (6) slots, each empty or holding
an entity summary. Saved rosters live in one JSON document that is loaded
once and rewritten in full after every save or delete; the last writer
wins.

Persisted document (version 1):

    {"version": 1,
     "rosters": [{"name": "...", "slots": [<entity dict> | null, ... x6]}]}

An unversioned list in the older `[{"name", "team": [...]}]` shape is
upgraded on load. Any other version is rejected with `DecodeError` rather
than guessed at.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config.settings import (
    DEFAULT_ROSTER_NAME,
    ROSTER_SIZE,
    ROSTER_STORE_KEY,
    ROSTER_STORE_VERSION,
)
from pokedex.api_models import StoredRosterDocument
from pokedex.constants import ERROR_EMPTY_TEAM, SUCCESS_TEAM_SAVED
from pokedex.errors import DecodeError, ValidationError
from pokedex.models import EntitySummary, SpriteRefs
from pokedex.storage import KeyValueStore
from pokedex.type_chart import TYPES, effectiveness
from pokedex.validators import normalize_roster_name, validate_slot_index

logger = logging.getLogger("pokedex.roster")

Slot = Optional[EntitySummary]


@dataclass(frozen=True)
class Roster:
    """
    An immutable team snapshot.

    Attributes:
        name: Team name; duplicates across saved rosters are allowed.
        slots: Exactly ROSTER_SIZE entries, each an entity or None.
    """

    name: str
    slots: Tuple[Slot, ...]

    def __post_init__(self):
        object.__setattr__(self, "slots", tuple(self.slots))
        if len(self.slots) != ROSTER_SIZE:
            raise ValidationError(
                f"A roster has exactly {ROSTER_SIZE} slots, got {len(self.slots)}"
            )

    @property
    def members(self) -> List[EntitySummary]:
        return [entity for entity in self.slots if entity is not None]

    @property
    def is_empty(self) -> bool:
        return all(entity is None for entity in self.slots)


class TeamRoster:
    """
    The team currently being edited.

    Slot assignment never fails for capacity reasons: `assign` overwrites
    whatever was in the slot. Only an out-of-range index is an error.
    """

    def __init__(self, name: str = DEFAULT_ROSTER_NAME):
        self.name = name
        self._slots: List[Slot] = [None] * ROSTER_SIZE

    @property
    def slots(self) -> Tuple[Slot, ...]:
        return tuple(self._slots)

    def assign(self, index: int, entity: EntitySummary) -> None:
        """Place `entity` in slot `index`, replacing any occupant."""
        validate_slot_index(index)
        self._slots[index] = entity.summary()

    def clear(self, index: int) -> None:
        validate_slot_index(index)
        self._slots[index] = None

    def add(self, entity: EntitySummary) -> Optional[int]:
        """
        Place `entity` in the first empty slot.

        Returns:
            The slot index used, or None if every slot is occupied.
        """
        for index, occupant in enumerate(self._slots):
            if occupant is None:
                self._slots[index] = entity.summary()
                return index
        return None

    def snapshot(self) -> Roster:
        return Roster(name=self.name, slots=tuple(self._slots))

    def restore(self, roster: Roster) -> None:
        """Replace the current team with a saved roster's contents."""
        self.name = roster.name
        self._slots = list(roster.slots)


# ==================== COMPOSITION STATISTICS ====================


def type_distribution(slots: Iterable[Slot]) -> Dict[str, int]:
    """
    Count type memberships across the occupied slots.

    A dual-type entity contributes one to each of its types.

    Returns:
        Mapping of type token to count, in first-seen order.
    """
    counts: Counter = Counter()
    for entity in slots:
        if entity is not None:
            counts.update(entity.types)
    return dict(counts)


def team_weaknesses(slots: Iterable[Slot]) -> Dict[str, int]:
    """
    For every attacking type, how many team members take more than 1× from it.

    Members with missing or unknown types are skipped.
    """
    weak: Dict[str, int] = {attacker: 0 for attacker in TYPES}
    for entity in slots:
        if entity is None or not entity.types:
            continue
        try:
            result = effectiveness(entity.types)
        except ValidationError:
            logger.debug(f"Skipping {entity.name}: unrecognized types {entity.types}")
            continue
        for attacker, value in result.items():
            if value > 1:
                weak[attacker] += 1
    return weak


# ==================== SERIALIZATION ====================


def encode_rosters(rosters: Sequence[Roster]) -> StoredRosterDocument:
    return {
        "version": ROSTER_STORE_VERSION,
        "rosters": [
            {
                "name": roster.name,
                "slots": [
                    entity.to_dict() if entity is not None else None
                    for entity in roster.slots
                ],
            }
            for roster in rosters
        ],
    }


def _legacy_entity(data: Mapping[str, Any]) -> EntitySummary:
    """Convert a full PokeAPI entity payload from the unversioned format."""
    try:
        types = tuple(
            t["type"]["name"] if isinstance(t, Mapping) else t
            for t in data.get("types") or ()
        )
        return EntitySummary(
            id=int(data["id"]),
            name=str(data["name"]),
            sprites=SpriteRefs.from_api(data.get("sprites")),
            types=types,
            height=int(data.get("height") or 0),
            weight=int(data.get("weight") or 0),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed legacy roster entity: {e!r}")


def _decode_slots(raw_slots: Any, decode_entity) -> Tuple[Slot, ...]:
    if not isinstance(raw_slots, list) or len(raw_slots) > ROSTER_SIZE:
        raise DecodeError(f"Stored roster slots must be a list of {ROSTER_SIZE}")
    slots = [decode_entity(item) if item is not None else None for item in raw_slots]
    slots.extend([None] * (ROSTER_SIZE - len(slots)))
    return tuple(slots)


def decode_rosters(document: Any) -> List[Roster]:
    """
    Parse a stored roster document.

    Raises:
        DecodeError: Unknown version or malformed content.
    """
    if document is None:
        return []

    try:
        if isinstance(document, list):
            logger.info("Upgrading unversioned roster store")
            return [
                Roster(
                    name=str(item["name"]),
                    slots=_decode_slots(item["team"], _legacy_entity),
                )
                for item in document
            ]

        version = document.get("version") if isinstance(document, dict) else None
        if version != ROSTER_STORE_VERSION:
            raise DecodeError(f"Unsupported roster store version: {version!r}")

        return [
            Roster(
                name=str(item["name"]),
                slots=_decode_slots(item["slots"], EntitySummary.from_dict),
            )
            for item in document["rosters"]
        ]
    except (KeyError, TypeError) as e:
        raise DecodeError(f"Malformed roster store: {e!r}")


# ==================== REPOSITORY ====================


class RosterRepository:
    """
    Saved rosters, persisted through a KeyValueStore.

    Call `load_all()` once at startup. After that, the in-memory list is
    authoritative and every mutation rewrites the whole stored document.
    `unsaved_changes` is True while the last write was refused by the store.
    """

    def __init__(self, store: KeyValueStore, key: str = ROSTER_STORE_KEY):
        self.store = store
        self.key = key
        self._rosters: List[Roster] = []
        self.unsaved_changes = False

    @property
    def rosters(self) -> Tuple[Roster, ...]:
        return tuple(self._rosters)

    def __len__(self) -> int:
        return len(self._rosters)

    async def load_all(self) -> List[Roster]:
        """
        Read the stored document into memory.

        Raises:
            DecodeError: If the document is malformed or of an unknown version.
        """
        document = await self.store.load(self.key)
        self._rosters = decode_rosters(document)
        self.unsaved_changes = False
        logger.info(f"Loaded {len(self._rosters)} saved rosters")
        return list(self._rosters)

    async def save(self, name: str, slots: Sequence[Slot]) -> Roster:
        """
        Append a snapshot of `slots` under `name` and persist.

        Raises:
            ValidationError: If every slot is empty or the slot count is wrong.
        """
        roster = Roster(
            name=normalize_roster_name(name, DEFAULT_ROSTER_NAME),
            slots=tuple(
                entity.summary() if entity is not None else None for entity in slots
            ),
        )
        if roster.is_empty:
            raise ValidationError(ERROR_EMPTY_TEAM)

        self._rosters.append(roster)
        await self._persist()
        logger.info(
            SUCCESS_TEAM_SAVED.format(name=roster.name),
            extra={"members": len(roster.members), "stored": len(self._rosters)},
        )
        return roster

    def load(self, index: int) -> Roster:
        """
        Return a copy of the stored roster at `index`.

        Raises:
            IndexError: If index is out of range.
        """
        validate_slot_index(index, len(self._rosters))
        stored = self._rosters[index]
        return Roster(name=stored.name, slots=tuple(stored.slots))

    async def delete(self, index: int) -> Roster:
        """
        Remove the stored roster at `index` and persist.

        Raises:
            IndexError: If index is out of range.
        """
        validate_slot_index(index, len(self._rosters))
        removed = self._rosters.pop(index)
        await self._persist()
        logger.info(f'Deleted roster "{removed.name}"')
        return removed

    async def _persist(self) -> bool:
        saved = await self.store.save(self.key, encode_rosters(self._rosters))
        if not saved:
            logger.error(
                "Failed to persist roster store",
                extra={"key": self.key, "rosters": len(self._rosters)},
            )
        self.unsaved_changes = not saved
        return saved
