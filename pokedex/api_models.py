"""
Type definitions for PokeAPI responses to ensure strict typing and reduce runtime errors.

Only the fields the core reads are declared. PokeAPI returns many more.
"""

from typing import Dict, List, Optional, TypedDict


class NamedAPIResource(TypedDict):
    """A `{name, url}` reference to another PokeAPI resource."""

    name: str
    url: str


class PokemonListResponse(TypedDict):
    """
    Response of `GET /pokemon?limit=N&offset=M`.

    Attributes:
        count: Total number of entities available (not the page size).
        results: References for the requested page only.
    """

    count: int
    next: Optional[str]
    previous: Optional[str]
    results: List[NamedAPIResource]


class PokemonTypeSlot(TypedDict):
    slot: int
    type: NamedAPIResource


class PokemonStatEntry(TypedDict):
    base_stat: int
    effort: int
    stat: NamedAPIResource


class PokemonAbilityEntry(TypedDict, total=False):
    ability: NamedAPIResource
    is_hidden: bool
    slot: int


class PokemonMoveEntry(TypedDict, total=False):
    move: NamedAPIResource


class PokemonResponse(TypedDict, total=False):
    """
    Response of `GET /pokemon/{id|name}`.

    total=False because the core tolerates missing optional sections
    (abilities, moves, stats) but requires id, name and types.
    """

    id: int
    name: str
    height: int
    weight: int
    sprites: Dict[str, object]
    types: List[PokemonTypeSlot]
    stats: List[PokemonStatEntry]
    abilities: List[PokemonAbilityEntry]
    moves: List[PokemonMoveEntry]
    species: NamedAPIResource


class FlavorTextEntry(TypedDict):
    flavor_text: str
    language: NamedAPIResource


class APIResource(TypedDict):
    url: str


class PokemonSpeciesResponse(TypedDict, total=False):
    """Response of `GET /pokemon-species/{id}` (the species reference)."""

    id: int
    name: str
    flavor_text_entries: List[FlavorTextEntry]
    evolution_chain: APIResource


class ChainLink(TypedDict):
    """One node of an evolution chain: a species and what it evolves into."""

    species: NamedAPIResource
    evolves_to: List["ChainLink"]


class EvolutionChainResponse(TypedDict):
    id: int
    chain: ChainLink


class TypePokemonEntry(TypedDict):
    slot: int
    pokemon: NamedAPIResource


class TypeResponse(TypedDict, total=False):
    """Response of `GET /type/{name}`."""

    id: int
    name: str
    pokemon: List[TypePokemonEntry]


class GenerationResponse(TypedDict, total=False):
    """Response of `GET /generation/{n}`."""

    id: int
    name: str
    pokemon_species: List[NamedAPIResource]


class StoredRoster(TypedDict):
    """One persisted roster: a name and exactly six slot payloads (or null)."""

    name: str
    slots: List[Optional[Dict[str, object]]]


class StoredRosterDocument(TypedDict):
    """The whole persisted roster store, written wholesale on every change."""

    version: int
    rosters: List[StoredRoster]
