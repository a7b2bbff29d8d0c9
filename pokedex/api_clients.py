"""
API Client module for fetching Pokemon data from PokeAPI.

This is the single gateway between the core and the network. Every call
issues exactly one GET request, decodes the JSON body and converts it into
a domain model. Failures are signalled uniformly:

- `NetworkError` for connection problems, timeouts, non-200 statuses and
  requests refused by the circuit breaker;
- `DecodeError` for bodies that are not JSON or lack required fields.

Nothing is retried and nothing is cached here. Callers that want to try
again re-run their whole operation.
"""

import asyncio
import logging
from typing import Any, List, Optional, Tuple, Union

import aiohttp

from config.settings import (
    API_REQUEST_TIMEOUT,
    API_STARTUP_VALIDATION_TIMEOUT,
    BREAKER_FAILURE_THRESHOLD,
    BREAKER_RECOVERY_TIMEOUT,
    BREAKER_SUCCESS_THRESHOLD,
    POKEAPI_URL,
    USER_AGENT,
)
from pokedex.api_models import (
    EvolutionChainResponse,
    GenerationResponse,
    PokemonListResponse,
    PokemonResponse,
    PokemonSpeciesResponse,
    TypeResponse,
)
from pokedex.circuit_breaker import CircuitBreaker, CircuitOpenError
from pokedex.errors import DecodeError, NetworkError
from pokedex.models import (
    EntityDetail,
    EvolutionNode,
    Page,
    SpeciesDescription,
    parse_entity_detail,
    parse_evolution_chain,
    parse_named_resources,
    parse_page,
    parse_species,
)

logger = logging.getLogger("pokedex.api")

# Connection pool settings
CONNECTION_POOL_LIMIT = 100  # Total connections across all hosts
CONNECTION_POOL_LIMIT_PER_HOST = 30  # Max connections per host
CONNECTION_KEEPALIVE_TIMEOUT = 30  # Seconds to keep idle connections

ResourceRef = Union[int, str]


class PokeAPIClient:
    """
    Read-only client for the PokeAPI REST resources the core consumes.

    Key Features:
    - **Connection Pooling**: One lazily created `aiohttp.ClientSession`
      backed by a `TCPConnector`, shared by every concurrent fetch.
    - **Circuit Breaker**: Transport failures trip a breaker so a down host
      fails fast instead of timing out once per fan-out item.
    - **Uniform Errors**: Only `NetworkError` and `DecodeError` leave this class.
    """

    def __init__(
        self,
        base_url: str = POKEAPI_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session: Optional[aiohttp.ClientSession] = session
        # An injected session belongs to the caller and is not closed here
        self._owns_session = session is None

        # Session creation lock to prevent race conditions during lazy loading
        self._session_lock = asyncio.Lock()

        self.request_count = 0

        self._breaker = CircuitBreaker(
            name="pokeapi",
            failure_threshold=BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=BREAKER_RECOVERY_TIMEOUT,
            success_threshold=BREAKER_SUCCESS_THRESHOLD,
            counted_exceptions=(
                aiohttp.ClientError,
                asyncio.TimeoutError,
            ),
        )

    async def get_session(self) -> aiohttp.ClientSession:
        """
        Get or create the aiohttp session with connection pooling configuration.

        Returns:
            Active aiohttp ClientSession.
        """
        async with self._session_lock:
            if self.session is None or self.session.closed:
                timeout = aiohttp.ClientTimeout(total=API_REQUEST_TIMEOUT)

                connector = aiohttp.TCPConnector(
                    limit=CONNECTION_POOL_LIMIT,
                    limit_per_host=CONNECTION_POOL_LIMIT_PER_HOST,
                    ttl_dns_cache=300,
                    keepalive_timeout=CONNECTION_KEEPALIVE_TIMEOUT,
                )

                self.session = aiohttp.ClientSession(
                    timeout=timeout,
                    connector=connector,
                    headers={"User-Agent": USER_AGENT},
                )
                self._owns_session = True

                logger.info(
                    "Created aiohttp session with connection pooling",
                    extra={
                        "total_limit": CONNECTION_POOL_LIMIT,
                        "per_host_limit": CONNECTION_POOL_LIMIT_PER_HOST,
                        "keepalive": CONNECTION_KEEPALIVE_TIMEOUT,
                    },
                )

        return self.session

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
            logger.info(
                f"API client session closed ({self.request_count} requests issued)",
                extra=self._breaker.get_stats(),
            )

    async def validate_api_connectivity(self) -> bool:
        """
        Check once on startup that PokeAPI answers.

        Never raises; the outcome is logged and returned so the caller can
        decide whether to continue.

        Returns:
            True if the API answered with a usable payload.
        """
        try:
            async with asyncio.timeout(API_STARTUP_VALIDATION_TIMEOUT):
                await self.fetch_page(limit=1, offset=0)
            logger.info("✅ PokeAPI is reachable")
            return True
        except asyncio.TimeoutError:
            logger.error(
                "❌ PokeAPI connection timed out",
                extra={"timeout_seconds": API_STARTUP_VALIDATION_TIMEOUT},
            )
        except (NetworkError, DecodeError) as e:
            logger.error(f"❌ PokeAPI validation failed: {e}")
        return False

    # ==================== URL RESOLUTION ====================

    def resource_url(self, endpoint: str, ref: ResourceRef) -> str:
        """
        Resolve a reference into an absolute URL.

        Full URLs (as found in listing results and cross references) are
        used as-is. Ids and names are placed under `endpoint`.

        Args:
            endpoint: Resource collection, e.g. 'pokemon' or 'type'.
            ref: Numeric id, name, or absolute URL.
        """
        ref = str(ref).strip()
        if ref.startswith(("http://", "https://")):
            return ref
        return f"{self.base_url}/{endpoint}/{ref.lower()}"

    # ==================== TRANSPORT ====================

    async def fetch_json(self, url: str) -> Any:
        """
        GET `url` and return the decoded JSON body.

        Raises:
            NetworkError: Transport failure, timeout, non-200 status, or open circuit.
            DecodeError: The body is not valid JSON.
        """
        try:
            return await self._breaker.call(self._request_json, url)
        except CircuitOpenError:
            logger.error("PokeAPI circuit breaker open", extra={"url": url})
            raise
        except aiohttp.ClientResponseError as e:
            raise NetworkError(
                f"PokeAPI returned status {e.status} for {url}", url=url, status=e.status
            ) from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request timed out: {url}", url=url) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed for {url}: {e}", url=url) from e

    async def _request_json(self, url: str) -> Any:
        """Internal method issuing the request (wrapped by the circuit breaker)."""
        session = await self.get_session()
        self.request_count += 1
        logger.debug(f"Fetching {url}")

        async with session.get(url) as resp:
            if resp.status >= 500:
                logger.warning(f"PokeAPI error {resp.status} for {url}")
                # Raise to trigger circuit breaker
                raise aiohttp.ClientResponseError(
                    request_info=resp.request_info,
                    history=resp.history,
                    status=resp.status,
                )
            if resp.status != 200:
                # The host answered; do not count against the breaker
                raise NetworkError(
                    f"PokeAPI returned status {resp.status} for {url}",
                    url=url,
                    status=resp.status,
                )
            try:
                return await resp.json(content_type=None)
            except ValueError as e:
                raise DecodeError(f"Invalid JSON from {url}: {e}", url=url) from e

    # ==================== RESOURCES ====================

    async def fetch_one(self, ref: ResourceRef) -> EntityDetail:
        """
        Fetch one entity by id, name or URL.

        Returns:
            The parsed EntityDetail.
        """
        url = self.resource_url("pokemon", ref)
        data: PokemonResponse = await self.fetch_json(url)
        return parse_entity_detail(data, url=url)

    async def fetch_page(self, limit: int, offset: int) -> Page:
        """
        Fetch one page of the entity listing.

        Args:
            limit: Page size.
            offset: Number of entities to skip.

        Returns:
            Page with the overall total count and this page's references.
        """
        url = f"{self.base_url}/pokemon?limit={limit}&offset={offset}"
        data: PokemonListResponse = await self.fetch_json(url)
        page = parse_page(data, url=url)
        logger.debug(
            "Fetched listing page",
            extra={"limit": limit, "offset": offset, "total": page.total},
        )
        return page

    async def fetch_species(self, ref: ResourceRef) -> SpeciesDescription:
        url = self.resource_url("pokemon-species", ref)
        data: PokemonSpeciesResponse = await self.fetch_json(url)
        return parse_species(data, url=url)

    async def fetch_evolution_chain(self, ref: ResourceRef) -> EvolutionNode:
        url = self.resource_url("evolution-chain", ref)
        data: EvolutionChainResponse = await self.fetch_json(url)
        return parse_evolution_chain(data, url=url)

    async def fetch_type_members(self, type_name: str) -> List[Tuple[str, str]]:
        """
        Fetch every entity that has `type_name` as one of its types.

        Returns:
            `(name, url)` pairs in API order.
        """
        url = self.resource_url("type", type_name)
        data: TypeResponse = await self.fetch_json(url)
        try:
            entries = [entry["pokemon"] for entry in data["pokemon"]]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Unexpected type shape: {e!r}", url=url) from e
        return parse_named_resources(entries, url=url)

    async def fetch_generation_species(self, generation: int) -> List[Tuple[str, str]]:
        """
        Fetch the species introduced in `generation`.

        Returns:
            `(name, species_url)` pairs in API order.
        """
        url = self.resource_url("generation", generation)
        data: GenerationResponse = await self.fetch_json(url)
        try:
            entries = data["pokemon_species"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Unexpected generation shape: {e!r}", url=url) from e
        return parse_named_resources(entries, url=url)

    def get_circuit_breaker_stats(self) -> dict:
        return self._breaker.get_stats()
