"""
Filter, sort and paginate entity listings.

A listing is produced in two stages:

1. Retrieval. The `FilterSpec` decides which strategy the aggregator uses:
   - types selected: entities having *all* selected types (at most
     `TYPE_FILTER_LIMIT` of them), no pagination;
   - generation selected: every species of that generation, no pagination;
   - otherwise: one page of `PAGE_SIZE` entities from the full listing.
2. Derivation. `apply_filters` narrows the retrieved collection by search
   term and sorts it. It is a pure function of (collection, spec), so the
   view can be re-derived when only the search term or sort key changes
   without touching the network.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from config.settings import PAGE_SIZE, TYPE_FILTER_LIMIT
from pokedex.aggregator import FanOutAggregator, gather_ordered
from pokedex.errors import ValidationError
from pokedex.matching import closest_entity_names
from pokedex.models import EntitySummary, resource_id
from pokedex.validators import (
    sanitize_search_term,
    validate_generation,
    validate_types,
)

logger = logging.getLogger("pokedex.pipeline")


class SortKey(str, Enum):
    """Listing sort orders. Ties are always broken by ascending id."""

    ID = "id"  # ascending
    NAME = "name"  # ascending
    HEIGHT = "height"  # descending
    WEIGHT = "weight"  # descending


class RetrievalMode(Enum):
    PAGED = "paged"
    BY_TYPE = "by_type"
    BY_GENERATION = "by_generation"


@dataclass(frozen=True)
class FilterSpec:
    """
    What the caller wants to see.

    Attributes:
        search_term: Case-insensitive substring of the name, matched as given
            (no trimming or character filtering); empty for all.
        selected_types: Type tokens that must all be present.
        selected_generation: Generation 1-8, or None.
        sort_key: Ordering of the derived view.
    """

    search_term: str = ""
    selected_types: FrozenSet[str] = frozenset()
    selected_generation: Optional[int] = None
    sort_key: SortKey = SortKey.ID

    def __post_init__(self):
        # Accept plain lists/strings from callers; the dataclass stays frozen
        object.__setattr__(self, "search_term", (self.search_term or "").lower())
        object.__setattr__(
            self,
            "selected_types",
            frozenset(t.strip().lower() for t in self.selected_types),
        )
        object.__setattr__(self, "sort_key", SortKey(self.sort_key))

    @property
    def retrieval_mode(self) -> RetrievalMode:
        if self.selected_types:
            return RetrievalMode.BY_TYPE
        if self.selected_generation is not None:
            return RetrievalMode.BY_GENERATION
        return RetrievalMode.PAGED

    def validate(self) -> None:
        """
        Raises:
            ValidationError: On an unknown type or out-of-range generation.
        """
        is_valid, error = validate_types(self.selected_types)
        if not is_valid:
            raise ValidationError(error)
        is_valid, error = validate_generation(self.selected_generation)
        if not is_valid:
            raise ValidationError(error)


# ==================== PURE DERIVATION ====================


def filter_by_search(
    collection: Iterable[EntitySummary], search_term: str
) -> List[EntitySummary]:
    """Keep entities whose name contains `search_term`, ignoring case."""
    term = search_term.lower()
    if not term:
        return list(collection)
    return [entity for entity in collection if term in entity.name.lower()]


def sort_entities(
    collection: Iterable[EntitySummary], sort_key: SortKey
) -> List[EntitySummary]:
    """
    Stable sort by `sort_key`, ties broken by ascending id.

    Height and weight sort heaviest/tallest first.
    """
    if sort_key == SortKey.NAME:
        return sorted(collection, key=lambda e: (e.name, e.id))
    if sort_key == SortKey.HEIGHT:
        return sorted(collection, key=lambda e: (-e.height, e.id))
    if sort_key == SortKey.WEIGHT:
        return sorted(collection, key=lambda e: (-e.weight, e.id))
    return sorted(collection, key=lambda e: e.id)


def apply_filters(
    collection: Sequence[EntitySummary], spec: FilterSpec
) -> List[EntitySummary]:
    """
    Derive the visible list: search filter first, then sort.

    Pure: the input collection is not modified and the same inputs always
    produce the same output.
    """
    return sort_entities(filter_by_search(collection, spec.search_term), spec.sort_key)


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for `total` entities, e.g. 160 / 20 -> 8."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(max(total, 0) / page_size)


def page_offset(page: int, page_size: int = PAGE_SIZE) -> int:
    """Listing offset of a 1-based page."""
    if page < 1:
        raise ValidationError(f"Page numbers start at 1, got {page}")
    return (page - 1) * page_size


@dataclass(frozen=True)
class ListingState:
    """
    Current filters plus the current page.

    Changing anything but the search term (or the page itself) starts over
    at page 1, because the underlying collection changes.
    """

    spec: FilterSpec = field(default_factory=FilterSpec)
    page: int = 1

    def with_changes(self, **changes) -> "ListingState":
        spec = replace(self.spec, **changes)
        # Compare normalized values; re-selecting the current value is no change
        changed = {
            name for name in changes if getattr(spec, name) != getattr(self.spec, name)
        }
        if changed <= {"search_term"}:
            return ListingState(spec=spec, page=self.page)
        return ListingState(spec=spec, page=1)

    def with_page(self, page: int) -> "ListingState":
        return ListingState(spec=self.spec, page=page)


@dataclass(frozen=True)
class Listing:
    """
    A retrieved collection and the view derived from it.

    Attributes:
        collection: Everything retrieved for `spec.retrieval_mode`.
        items: `apply_filters(collection, spec)`.
        page: Page this listing was retrieved for (1 when unpaginated).
        total_pages: Page count, or None when pagination is disabled.
    """

    spec: FilterSpec
    collection: Tuple[EntitySummary, ...]
    items: Tuple[EntitySummary, ...]
    page: int = 1
    total_pages: Optional[int] = None

    @property
    def paginated(self) -> bool:
        return self.total_pages is not None

    def rederive(self, spec: FilterSpec) -> "Listing":
        """
        Re-apply search and sort to the already retrieved collection.

        Only valid when `spec` implies the same retrieval as this listing's spec.
        """
        if (
            spec.selected_types != self.spec.selected_types
            or spec.selected_generation != self.spec.selected_generation
        ):
            raise ValidationError("Type or generation changed; retrieve again")
        return replace(
            self, spec=spec, items=tuple(apply_filters(self.collection, spec))
        )


# ==================== RETRIEVAL ====================


class DexPipeline:
    """Chooses a retrieval strategy for a FilterSpec and derives the listing."""

    def __init__(
        self,
        aggregator: FanOutAggregator,
        page_size: int = PAGE_SIZE,
        type_limit: int = TYPE_FILTER_LIMIT,
    ):
        self.aggregator = aggregator
        self.client = aggregator.client
        self.page_size = page_size
        self.type_limit = type_limit

    async def listing(self, state: ListingState) -> Listing:
        """
        Retrieve and derive the listing for `state`.

        Raises:
            ValidationError: Invalid filters or page number.
            NetworkError, DecodeError: From any retrieval step.
        """
        spec = state.spec
        spec.validate()
        mode = spec.retrieval_mode

        logger.info(
            "Building listing",
            extra={"mode": mode.value, "page": state.page, "sort": spec.sort_key.value},
        )

        total_pages: Optional[int] = None
        page = 1
        if mode == RetrievalMode.BY_TYPE:
            collection = await self.by_types(spec.selected_types)
        elif mode == RetrievalMode.BY_GENERATION:
            collection = await self.by_generation(spec.selected_generation)
        else:
            page = state.page
            collection, total_pages = await self.paged(page)

        return Listing(
            spec=spec,
            collection=tuple(collection),
            items=tuple(apply_filters(collection, spec)),
            page=page,
            total_pages=total_pages,
        )

    async def paged(self, page: int) -> Tuple[List[EntitySummary], int]:
        """
        Retrieve one page of the full listing.

        Returns:
            Tuple of (entities on the page, total page count).
        """
        result = await self.aggregator.collect_page(
            limit=self.page_size, offset=page_offset(page, self.page_size)
        )
        return list(result.items), page_count(result.total, self.page_size)

    async def by_types(self, types: Iterable[str]) -> List[EntitySummary]:
        """
        Retrieve entities that have every one of `types`.

        Member lists are fetched per type and intersected by name. The
        result keeps the order of the first type (alphabetically) and is
        capped at `type_limit` before details are fetched.
        """
        ordered_types = sorted(types)
        if not ordered_types:
            return []

        member_lists = await gather_ordered(
            ordered_types, self.client.fetch_type_members, self.aggregator.concurrency
        )

        first, *others = member_lists
        other_names = [{name for name, _ in members} for members in others]
        intersection = [
            (name, url)
            for name, url in first
            if all(name in names for names in other_names)
        ]

        logger.debug(
            "Type intersection",
            extra={
                "types": ordered_types,
                "matches": len(intersection),
                "limit": self.type_limit,
            },
        )
        return await self.aggregator.collect(
            [url for _, url in intersection[: self.type_limit]]
        )

    async def by_generation(self, generation: int) -> List[EntitySummary]:
        """
        Retrieve every entity introduced in `generation`.

        Species URLs are mapped to entity ids (the default form shares the
        species id). No cap is applied.
        """
        species = await self.client.fetch_generation_species(generation)
        return await self.aggregator.collect([resource_id(url) for _, url in species])

    async def suggest_names(
        self, collection: Sequence[EntitySummary], search_term: str
    ) -> List[str]:
        """
        Fuzzy "did you mean" names for a search term with no substring match.

        Returns an empty list when the term already matches something. Only
        the fuzzy lookup uses the sanitized term.
        """
        if not search_term or filter_by_search(collection, search_term):
            return []
        term = sanitize_search_term(search_term)
        if not term:
            return []
        return await closest_entity_names(term, [entity.name for entity in collection])
