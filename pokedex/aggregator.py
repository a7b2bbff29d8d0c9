"""
Fan-out / fan-in aggregation of entity details.

A listing call yields N references; each needs its own detail request.
`FanOutAggregator` issues those requests through a fixed-size pool of
workers draining a shared queue, then joins them. Results are written into
a pre-sized list by input index, so the output order is always the input
order regardless of which request finishes first.

The default mode is all-or-nothing: the first failure cancels the remaining
workers and is re-raised, so callers never observe a partial collection.
`collect_partial` is the opt-in alternative that reports per-item failures.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence, Tuple, TypeVar

from config.settings import MAX_CONCURRENT_API_REQUESTS
from pokedex.api_clients import PokeAPIClient, ResourceRef
from pokedex.errors import PokedexError
from pokedex.models import EntityDetail

logger = logging.getLogger("pokedex.aggregator")

T = TypeVar("T")
R = TypeVar("R")


async def gather_ordered(
    items: Sequence[T],
    fetch: Callable[[T], Awaitable[R]],
    concurrency: int = MAX_CONCURRENT_API_REQUESTS,
) -> List[R]:
    """
    Apply `fetch` to every item with at most `concurrency` calls in flight.

    Args:
        items: Inputs, in the order results should be returned.
        fetch: Async function called once per item.
        concurrency: Number of workers draining the queue.

    Returns:
        `[await fetch(item) for item in items]`, computed concurrently.

    Raises:
        Exception: The first exception raised by any `fetch` call. Workers
            still running are cancelled before it propagates.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if not items:
        return []

    queue: asyncio.Queue = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    results: List[R] = [None] * len(items)  # type: ignore[list-item]

    async def _worker() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[index] = await fetch(item)

    workers = [
        asyncio.create_task(_worker()) for _ in range(min(concurrency, len(items)))
    ]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    return results


@dataclass(frozen=True)
class PageResult:
    """
    One aggregated listing page.

    Attributes:
        total: Total number of entities upstream (for page count).
        items: Resolved details, in listing order.
    """

    total: int
    items: Tuple[EntityDetail, ...]


@dataclass
class PartialCollection:
    """
    Outcome of a failure-tolerant aggregation.

    Attributes:
        items: Successfully resolved details, in input order.
        failures: `(ref, error)` for every reference that could not be resolved.
    """

    items: List[EntityDetail] = field(default_factory=list)
    failures: List[Tuple[ResourceRef, PokedexError]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


class FanOutAggregator:
    """
    Turns lists of references into ordered lists of entity details.

    Every public method issues its detail calls concurrently through
    `gather_ordered`, bounded by `concurrency`.
    """

    def __init__(
        self, client: PokeAPIClient, concurrency: int = MAX_CONCURRENT_API_REQUESTS
    ):
        self.client = client
        self.concurrency = concurrency

    async def collect(self, refs: Sequence[ResourceRef]) -> List[EntityDetail]:
        """
        Resolve every reference to an EntityDetail (all-or-nothing).

        Raises:
            NetworkError, DecodeError: From the first failing detail fetch.
        """
        logger.debug(
            "Fanning out detail requests",
            extra={"count": len(refs), "concurrency": self.concurrency},
        )
        try:
            return await gather_ordered(refs, self.client.fetch_one, self.concurrency)
        except PokedexError as e:
            logger.warning(
                f"Aggregation of {len(refs)} entities failed: {e}",
                extra={"count": len(refs)},
            )
            raise

    async def collect_page(self, limit: int, offset: int) -> PageResult:
        """
        Fetch one listing page, then resolve each of its entries.

        Returns:
            PageResult with the upstream total and the resolved items.
        """
        page = await self.client.fetch_page(limit=limit, offset=offset)
        items = await self.collect([url for _, url in page.items])
        return PageResult(total=page.total, items=tuple(items))

    async def collect_partial(self, refs: Sequence[ResourceRef]) -> PartialCollection:
        """
        Resolve every reference, keeping successes when some fetches fail.

        Only `PokedexError`s are recorded as failures; anything else is a bug
        and still propagates.
        """

        async def _fetch_or_capture(ref: ResourceRef):
            try:
                return await self.client.fetch_one(ref)
            except PokedexError as e:
                return e

        outcomes = await gather_ordered(refs, _fetch_or_capture, self.concurrency)

        collection = PartialCollection()
        for ref, outcome in zip(refs, outcomes):
            if isinstance(outcome, PokedexError):
                collection.failures.append((ref, outcome))
            else:
                collection.items.append(outcome)

        if collection.failures:
            logger.warning(
                "Partial aggregation",
                extra={
                    "resolved": len(collection.items),
                    "failed": len(collection.failures),
                },
            )
        return collection
