import asyncio
import os
import sys

import pytest

# Add project root to python path so we can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pokedex.errors import NetworkError  # noqa: E402
from pokedex.models import (  # noqa: E402
    EntitySummary,
    Page,
    SpriteRefs,
    parse_entity_detail,
    parse_evolution_chain,
    parse_species,
    resource_id,
)
from pokedex.storage import MemoryKeyValueStore  # noqa: E402

API = "https://pokeapi.co/api/v2"


def pokemon_payload(id, name, types=("normal",), height=10, weight=100, stats=None):
    """Minimal `GET /pokemon/{id}` body."""
    return {
        "id": id,
        "name": name,
        "height": height,
        "weight": weight,
        "sprites": {
            "front_default": f"https://img.test/{id}.png",
            "other": {"official-artwork": {"front_default": f"https://art.test/{id}.png"}},
        },
        "types": [
            {"slot": slot, "type": {"name": t, "url": f"{API}/type/{t}/"}}
            for slot, t in enumerate(types, start=1)
        ],
        "stats": [
            {"base_stat": value, "effort": 0, "stat": {"name": stat, "url": ""}}
            for stat, value in (stats or {"hp": 45, "attack": 49}).items()
        ],
        "abilities": [{"ability": {"name": "overgrow", "url": ""}}],
        "moves": [{"move": {"name": "tackle", "url": ""}}],
        "species": {"name": name, "url": f"{API}/pokemon-species/{id}/"},
    }


def chain_link(name, id, *children):
    return {
        "species": {"name": name, "url": f"{API}/pokemon-species/{id}/"},
        "evolves_to": list(children),
    }


def summary(id, name, types=("normal",), height=10, weight=100):
    return EntitySummary(
        id=id,
        name=name,
        sprites=SpriteRefs(front_default=f"https://img.test/{id}.png"),
        types=tuple(types),
        height=height,
        weight=weight,
    )


class FakeGateway:
    """
    In-memory stand-in for PokeAPIClient.

    Entities are addressable by id, name or URL. `fail` names refs whose
    fetch raises NetworkError. Tracks peak concurrency of `fetch_one`.
    """

    def __init__(self, payloads=(), delay=0.0):
        self.entities = {}
        for payload in payloads:
            self.add(payload)
        self.pages = []
        self.type_members = {}
        self.generation_species = {}
        self.species = {}
        self.chains = {}
        self.fail = set()
        self.delay = delay
        self.delays = {}
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    def add(self, payload):
        detail = parse_entity_detail(payload)
        self.entities[str(detail.id)] = detail
        self.entities[detail.name] = detail
        self.entities[f"{API}/pokemon/{detail.id}/"] = detail
        return detail

    async def fetch_one(self, ref):
        ref = str(ref)
        self.calls.append(ref)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(ref, self.delay))
            if ref in self.fail:
                raise NetworkError(f"boom: {ref}", url=ref)
            return self.entities[ref]
        finally:
            self.in_flight -= 1

    async def fetch_page(self, limit, offset):
        refs = self.pages[offset : offset + limit]
        return Page(
            total=len(self.pages),
            items=tuple((resource_id(url), url) for url in refs),
        )

    async def fetch_type_members(self, type_name):
        return list(self.type_members[type_name])

    async def fetch_generation_species(self, generation):
        return list(self.generation_species[generation])

    async def fetch_species(self, ref):
        return parse_species(self.species[str(ref)])

    async def fetch_evolution_chain(self, ref):
        return parse_evolution_chain(self.chains[str(ref)])

    async def close(self):
        self.closed = True


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def memory_store():
    return MemoryKeyValueStore()
