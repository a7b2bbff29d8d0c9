"""
"Did you mean" lookups for entity names.

When a listing search finds nothing, `closest_entity_names` ranks the names
of the retrieved collection against the (sanitized) search term. Listings
fetched by generation hold a few hundred names, so the `difflib` scan runs
in a worker thread while other entity fetches are still in flight.
"""

import asyncio
import difflib
from typing import Iterable, List

from pokedex.constants import SUGGESTION_COUNT, SUGGESTION_CUTOFF


def _rank_names(term: str, names: List[str], limit: int, cutoff: float) -> List[str]:
    return difflib.get_close_matches(term, names, n=limit, cutoff=cutoff)


async def closest_entity_names(
    term: str,
    names: Iterable[str],
    limit: int = SUGGESTION_COUNT,
    cutoff: float = SUGGESTION_CUTOFF,
) -> List[str]:
    """
    Entity names most similar to `term`, best first.

    Comparison ignores case. Names are returned lowercased and each at most
    once, since paged and type listings can repeat an entity.

    Args:
        term: Search term with no substring match in `names`.
        names: Names of the currently retrieved collection.
        limit: Maximum number of suggestions.
        cutoff: Similarity threshold (0.0 to 1.0).
    """
    candidates = list(dict.fromkeys(name.lower() for name in names))
    term = term.lower()
    if not term or not candidates:
        return []

    return await asyncio.to_thread(_rank_names, term, candidates, limit, cutoff)
