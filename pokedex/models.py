"""
Domain models for entities, species, evolution chains and rosters.

Raw PokeAPI payloads (see `pokedex.api_models`) are converted into these
immutable dataclasses at the gateway boundary. Any payload missing a
required field raises `DecodeError` here so that shape problems surface as
a single, uniform failure type.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pokedex.errors import DecodeError


def resource_id(url: str) -> str:
    """
    Extract the trailing identifier from a PokeAPI resource URL.

    Example: 'https://pokeapi.co/api/v2/pokemon-species/25/' -> '25'.

    Raises:
        DecodeError: If the URL has no path segment to extract.
    """
    parts = [part for part in str(url).split("/") if part]
    if not parts:
        raise DecodeError(f"Cannot extract resource id from {url!r}", url=url)
    return parts[-1]


@dataclass(frozen=True)
class SpriteRefs:
    """
    Image URLs for an entity. Any of them may be missing upstream.

    Attributes:
        front_default: Standard front sprite.
        front_shiny: Shiny front sprite.
        back_default: Standard back sprite.
        back_shiny: Shiny back sprite.
        official_artwork: High resolution artwork ('other.official-artwork').
    """

    front_default: Optional[str] = None
    front_shiny: Optional[str] = None
    back_default: Optional[str] = None
    back_shiny: Optional[str] = None
    official_artwork: Optional[str] = None

    @property
    def display_image(self) -> Optional[str]:
        """Preferred image for cards and evolution entries."""
        return self.official_artwork or self.front_default

    @classmethod
    def from_api(cls, sprites: Optional[Mapping[str, Any]]) -> "SpriteRefs":
        if not sprites:
            return cls()
        other = sprites.get("other") or {}
        artwork = other.get("official-artwork") or {}
        return cls(
            front_default=sprites.get("front_default"),
            front_shiny=sprites.get("front_shiny"),
            back_default=sprites.get("back_default"),
            back_shiny=sprites.get("back_shiny"),
            official_artwork=artwork.get("front_default"),
        )


@dataclass(frozen=True)
class EntitySummary:
    """
    The fields shown on a listing card and stored in a roster slot.

    Attributes:
        id: National dex number (>= 1).
        name: Lowercase API token (e.g. 'mr-mime').
        sprites: Image references.
        types: One or two type tokens in slot order.
        height: Height in decimetres.
        weight: Weight in hectograms.
    """

    id: int
    name: str
    sprites: SpriteRefs = field(default_factory=SpriteRefs)
    types: Tuple[str, ...] = ()
    height: int = 0
    weight: int = 0

    def summary(self) -> "EntitySummary":
        """Return the plain summary view (drops detail-only fields)."""
        return EntitySummary(
            id=self.id,
            name=self.name,
            sprites=self.sprites,
            types=self.types,
            height=self.height,
            weight=self.weight,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used by the roster store."""
        return {
            "id": self.id,
            "name": self.name,
            "types": list(self.types),
            "height": self.height,
            "weight": self.weight,
            "sprites": {
                "front_default": self.sprites.front_default,
                "front_shiny": self.sprites.front_shiny,
                "back_default": self.sprites.back_default,
                "back_shiny": self.sprites.back_shiny,
                "official_artwork": self.sprites.official_artwork,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EntitySummary":
        """Inverse of `to_dict`. Raises DecodeError on a malformed record."""
        try:
            sprites = data.get("sprites") or {}
            return cls(
                id=int(data["id"]),
                name=str(data["name"]),
                sprites=SpriteRefs(
                    front_default=sprites.get("front_default"),
                    front_shiny=sprites.get("front_shiny"),
                    back_default=sprites.get("back_default"),
                    back_shiny=sprites.get("back_shiny"),
                    official_artwork=sprites.get("official_artwork"),
                ),
                types=tuple(data.get("types") or ()),
                height=int(data.get("height") or 0),
                weight=int(data.get("weight") or 0),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Malformed stored entity: {e}")


@dataclass(frozen=True)
class Stat:
    name: str
    base_value: int


@dataclass(frozen=True)
class EntityDetail(EntitySummary):
    """
    Full entity record as returned by `GET /pokemon/{id}`.

    Attributes:
        stats: Base stats in API order (hp, attack, defense, ...).
        abilities: Ability names.
        moves: Move names in API order.
        species_ref: URL of the species resource.
    """

    stats: Tuple[Stat, ...] = ()
    abilities: FrozenSet[str] = frozenset()
    moves: Tuple[str, ...] = ()
    species_ref: Optional[str] = None


@dataclass(frozen=True)
class SpeciesDescription:
    """
    Species record: localized descriptions plus the evolution chain link.

    Attributes:
        flavor_text: First flavor text seen per language code.
        evolution_chain_ref: URL of the evolution chain, if the species has one.
    """

    name: str
    flavor_text: Mapping[str, str]
    evolution_chain_ref: Optional[str]


@dataclass(frozen=True)
class EvolutionNode:
    """A species in an evolution tree and the species it can evolve into."""

    species_name: str
    species_ref: str
    children: Tuple["EvolutionNode", ...] = ()


@dataclass(frozen=True)
class EvolutionEntry:
    """One resolved, displayable stage of a flattened evolution chain."""

    id: int
    name: str
    image: Optional[str]


@dataclass(frozen=True)
class Page:
    """
    A single page of the entity listing.

    Attributes:
        total: Total number of entities across all pages.
        items: `(name, url)` references for this page only.
    """

    total: int
    items: Tuple[Tuple[str, str], ...]


def parse_named_resources(entries: Any, url: Optional[str] = None) -> List[Tuple[str, str]]:
    """Convert a list of `{name, url}` mappings into tuples."""
    try:
        return [(entry["name"], entry["url"]) for entry in entries]
    except (KeyError, TypeError) as e:
        raise DecodeError(f"Unexpected resource list shape: {e}", url=url)


def parse_page(data: Any, url: Optional[str] = None) -> Page:
    try:
        total = int(data["count"])
        results = data["results"]
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Unexpected listing shape: {e}", url=url)
    return Page(total=total, items=tuple(parse_named_resources(results, url)))


def parse_entity_detail(data: Any, url: Optional[str] = None) -> EntityDetail:
    """
    Build an `EntityDetail` from a `GET /pokemon/{id}` payload.

    Raises:
        DecodeError: If id, name or types are missing or malformed.
    """
    try:
        type_slots = sorted(data["types"], key=lambda t: t.get("slot", 0))
        types = tuple(t["type"]["name"] for t in type_slots)
        stats = tuple(
            Stat(name=s["stat"]["name"], base_value=int(s["base_stat"]))
            for s in data.get("stats") or ()
        )
        abilities = frozenset(
            a["ability"]["name"] for a in data.get("abilities") or ()
        )
        moves = tuple(m["move"]["name"] for m in data.get("moves") or ())
        species = data.get("species") or {}

        return EntityDetail(
            id=int(data["id"]),
            name=str(data["name"]),
            sprites=SpriteRefs.from_api(data.get("sprites")),
            types=types,
            height=int(data.get("height") or 0),
            weight=int(data.get("weight") or 0),
            stats=stats,
            abilities=abilities,
            moves=moves,
            species_ref=species.get("url"),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Unexpected entity shape: {e!r}", url=url)


def parse_species(data: Any, url: Optional[str] = None) -> SpeciesDescription:
    try:
        flavor_text: Dict[str, str] = {}
        for entry in data.get("flavor_text_entries") or ():
            language = entry["language"]["name"]
            # Keep the first entry per language, as listed by the API
            flavor_text.setdefault(language, entry["flavor_text"])

        chain = data.get("evolution_chain") or {}
        return SpeciesDescription(
            name=str(data["name"]),
            flavor_text=flavor_text,
            evolution_chain_ref=chain.get("url"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise DecodeError(f"Unexpected species shape: {e!r}", url=url)


def parse_evolution_chain(data: Any, url: Optional[str] = None) -> EvolutionNode:
    """
    Build the evolution tree from a `GET /evolution-chain/{id}` payload.

    Raises:
        DecodeError: If the `chain` root or any node is malformed.
    """

    def _build(link: Mapping[str, Any]) -> EvolutionNode:
        return EvolutionNode(
            species_name=link["species"]["name"],
            species_ref=link["species"]["url"],
            children=tuple(_build(child) for child in link.get("evolves_to") or ()),
        )

    try:
        return _build(data["chain"])
    except (KeyError, TypeError, AttributeError) as e:
        raise DecodeError(f"Unexpected evolution chain shape: {e!r}", url=url)
