"""
Composition root wiring the gateway, aggregator, flattener, pipeline and
roster repository together for one session.
"""

import logging
from typing import List, Optional

from config.settings import MAX_CONCURRENT_API_REQUESTS
from pokedex.aggregator import FanOutAggregator
from pokedex.api_clients import PokeAPIClient, ResourceRef
from pokedex.database import close_database
from pokedex.evolution import EvolutionFlattener
from pokedex.models import EntityDetail, EvolutionEntry
from pokedex.pipeline import DexPipeline, Listing, ListingState
from pokedex.roster import RosterRepository, TeamRoster
from pokedex.storage import KeyValueStore, SQLiteKeyValueStore

logger = logging.getLogger("pokedex.service")


class PokedexService:
    """
    Owns every component for a session.

    Usage:
        async with PokedexService() as dex:
            listing = await dex.listing(ListingState())
    """

    def __init__(
        self,
        client: Optional[PokeAPIClient] = None,
        store: Optional[KeyValueStore] = None,
        concurrency: int = MAX_CONCURRENT_API_REQUESTS,
    ):
        self.client = client or PokeAPIClient()
        self.aggregator = FanOutAggregator(self.client, concurrency=concurrency)
        self.evolutions = EvolutionFlattener(self.aggregator)
        self.pipeline = DexPipeline(self.aggregator)
        self._owns_store = store is None
        self.rosters = RosterRepository(store or SQLiteKeyValueStore())
        self.team = TeamRoster()

    async def start(self) -> None:
        """Load persisted rosters. Network connectivity is checked separately."""
        await self.rosters.load_all()

    async def close(self) -> None:
        await self.client.close()
        if self._owns_store:
            await close_database()

    async def __aenter__(self) -> "PokedexService":
        try:
            await self.start()
        except BaseException:
            # __aexit__ is not called when entering fails
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def listing(self, state: ListingState) -> Listing:
        return await self.pipeline.listing(state)

    async def entity(self, ref: ResourceRef) -> EntityDetail:
        return await self.client.fetch_one(ref)

    async def evolution_chain(self, ref: ResourceRef) -> List[EvolutionEntry]:
        """Fetch an entity, then its flattened evolution chain."""
        detail = await self.client.fetch_one(ref)
        return await self.evolutions.for_entity(detail)
