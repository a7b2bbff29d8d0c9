"""
Evolution chain flattening and resolution.

PokeAPI describes evolutions as a tree: a base species and the species it
evolves into, each of which may branch again (e.g. Eevee has eight
targets). Views want a flat strip of images, so the tree is walked in
pre-order (a node, then each of its children in source order) and every
node is resolved to an `EvolutionEntry` with one detail fetch.
"""

import logging
from typing import List

from pokedex.aggregator import FanOutAggregator
from pokedex.models import (
    EntityDetail,
    EvolutionEntry,
    EvolutionNode,
    resource_id,
)

logger = logging.getLogger("pokedex.evolution")


def flatten_chain(root: EvolutionNode) -> List[EvolutionNode]:
    """
    Walk an evolution tree in pre-order.

    Uses an explicit stack, so arbitrarily deep chains are fine.

    Args:
        root: Base form of the chain.

    Returns:
        Every node exactly once: root first, then each child subtree in the
        order the source lists them.
    """
    ordered: List[EvolutionNode] = []
    stack = [root]
    while stack:
        node = stack.pop()
        ordered.append(node)
        # Reversed so the first child is popped (visited) first
        stack.extend(reversed(node.children))
    return ordered


def to_entry(detail: EntityDetail) -> EvolutionEntry:
    return EvolutionEntry(
        id=detail.id,
        name=detail.name,
        image=detail.sprites.display_image,
    )


class EvolutionFlattener:
    """Resolves evolution trees into ordered, displayable entries."""

    def __init__(self, aggregator: FanOutAggregator):
        self.aggregator = aggregator
        self.client = aggregator.client

    async def resolve(self, root: EvolutionNode) -> List[EvolutionEntry]:
        """
        Flatten `root` and fetch display detail for every node.

        Each node's entity is fetched by the id at the end of its species
        URL (species and default form share the id). Fetches run concurrently
        and fail as a whole if any one fails.

        Returns:
            One entry per node, in traversal order.
        """
        nodes = flatten_chain(root)
        refs = [resource_id(node.species_ref) for node in nodes]

        details = await self.aggregator.collect(refs)

        logger.debug(
            "Resolved evolution chain",
            extra={"root": root.species_name, "stages": len(details)},
        )
        return [to_entry(detail) for detail in details]

    async def for_species(self, species_ref) -> List[EvolutionEntry]:
        """
        Resolve the evolution chain a species belongs to.

        Args:
            species_ref: Species id, name or URL.

        Returns:
            The flattened chain, or an empty list if the species has no chain
            reference at all.
        """
        species = await self.client.fetch_species(species_ref)
        if not species.evolution_chain_ref:
            logger.info(f"Species {species.name} has no evolution chain")
            return []

        root = await self.client.fetch_evolution_chain(species.evolution_chain_ref)
        return await self.resolve(root)

    async def for_entity(self, detail: EntityDetail) -> List[EvolutionEntry]:
        """Resolve the evolution chain for an already fetched entity."""
        species_ref = detail.species_ref or detail.id
        return await self.for_species(species_ref)
