from unittest.mock import MagicMock

import aiohttp
import pytest
import pytest_asyncio

from conftest import API, chain_link, pokemon_payload
from pokedex.api_clients import PokeAPIClient
from pokedex.circuit_breaker import CircuitOpenError, CircuitState
from pokedex.errors import DecodeError, NetworkError


class FakeResponse:
    def __init__(self, status=200, payload=None, bad_json=False):
        self.status = status
        self._payload = payload
        self._bad_json = bad_json
        self.request_info = MagicMock()
        self.history = ()

    async def json(self, content_type="application/json"):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Routes URLs to canned responses or exceptions."""

    closed = False

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def get(self, url):
        self.requested.append(url)
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        return route


@pytest.mark.asyncio
class TestPokeAPIClient:
    @pytest_asyncio.fixture
    async def make_client(self):
        clients = []

        def _make(routes):
            session = FakeSession(routes)
            client = PokeAPIClient(base_url=API, session=session)
            clients.append(client)
            return client, session

        yield _make
        for client in clients:
            await client.close()

    async def test_fetch_one_by_name_parses_detail(self, make_client):
        payload = pokemon_payload(6, "charizard", ("fire", "flying"), 17, 905)
        client, session = make_client(
            {f"{API}/pokemon/charizard": FakeResponse(payload=payload)}
        )

        detail = await client.fetch_one("Charizard")

        assert session.requested == [f"{API}/pokemon/charizard"]
        assert detail.id == 6
        assert detail.types == ("fire", "flying")
        assert detail.height == 17
        assert detail.sprites.display_image == "https://art.test/6.png"
        assert detail.species_ref == f"{API}/pokemon-species/6/"
        assert [s.name for s in detail.stats] == ["hp", "attack"]

    async def test_fetch_one_uses_full_urls_as_is(self, make_client):
        url = f"{API}/pokemon/25/"
        client, session = make_client(
            {url: FakeResponse(payload=pokemon_payload(25, "pikachu", ("electric",)))}
        )

        detail = await client.fetch_one(url)

        assert detail.name == "pikachu"
        assert session.requested == [url]

    async def test_fetch_page(self, make_client):
        url = f"{API}/pokemon?limit=2&offset=40"
        payload = {
            "count": 1302,
            "next": None,
            "previous": None,
            "results": [
                {"name": "nidoran-m", "url": f"{API}/pokemon/32/"},
                {"name": "nidorino", "url": f"{API}/pokemon/33/"},
            ],
        }
        client, _ = make_client({url: FakeResponse(payload=payload)})

        page = await client.fetch_page(limit=2, offset=40)

        assert page.total == 1302
        assert page.items == (
            ("nidoran-m", f"{API}/pokemon/32/"),
            ("nidorino", f"{API}/pokemon/33/"),
        )

    async def test_type_and_generation_members(self, make_client):
        client, _ = make_client(
            {
                f"{API}/type/ghost": FakeResponse(
                    payload={
                        "name": "ghost",
                        "pokemon": [
                            {"slot": 1, "pokemon": {"name": "gastly", "url": "u92"}},
                            {"slot": 2, "pokemon": {"name": "sableye", "url": "u302"}},
                        ],
                    }
                ),
                f"{API}/generation/1": FakeResponse(
                    payload={"pokemon_species": [{"name": "bulbasaur", "url": "s1"}]}
                ),
            }
        )

        assert await client.fetch_type_members("ghost") == [
            ("gastly", "u92"),
            ("sableye", "u302"),
        ]
        assert await client.fetch_generation_species(1) == [("bulbasaur", "s1")]

    async def test_species_and_chain(self, make_client):
        species_url = f"{API}/pokemon-species/1/"
        chain_url = f"{API}/evolution-chain/1/"
        client, _ = make_client(
            {
                species_url: FakeResponse(
                    payload={
                        "name": "bulbasaur",
                        "flavor_text_entries": [
                            {"flavor_text": "Une graine", "language": {"name": "fr"}},
                            {"flavor_text": "A strange\fseed", "language": {"name": "en"}},
                            {"flavor_text": "Later text", "language": {"name": "en"}},
                        ],
                        "evolution_chain": {"url": chain_url},
                    }
                ),
                chain_url: FakeResponse(
                    payload={
                        "id": 1,
                        "chain": chain_link(
                            "bulbasaur", 1, chain_link("ivysaur", 2, chain_link("venusaur", 3))
                        ),
                    }
                ),
            }
        )

        species = await client.fetch_species(species_url)
        root = await client.fetch_evolution_chain(species.evolution_chain_ref)

        assert species.flavor_text["en"] == "A strange\fseed"
        assert root.species_name == "bulbasaur"
        assert root.children[0].children[0].species_name == "venusaur"

    async def test_not_found_is_network_error(self, make_client):
        client, _ = make_client({f"{API}/pokemon/missingno": FakeResponse(status=404)})

        with pytest.raises(NetworkError) as exc_info:
            await client.fetch_one("missingno")

        assert exc_info.value.status == 404
        # A 404 means the host is up; the breaker is not affected
        assert client._breaker.failure_count == 0

    async def test_server_error_is_network_error(self, make_client):
        client, _ = make_client({f"{API}/pokemon/1": FakeResponse(status=503)})

        with pytest.raises(NetworkError) as exc_info:
            await client.fetch_one(1)

        assert exc_info.value.status == 503
        assert client._breaker.failure_count == 1

    async def test_transport_error_is_network_error(self, make_client):
        client, _ = make_client(
            {f"{API}/pokemon/1": aiohttp.ClientConnectionError("connection reset")}
        )

        with pytest.raises(NetworkError):
            await client.fetch_one(1)

    async def test_invalid_json_is_decode_error(self, make_client):
        client, _ = make_client({f"{API}/pokemon/1": FakeResponse(bad_json=True)})

        with pytest.raises(DecodeError):
            await client.fetch_one(1)

    async def test_unexpected_shape_is_decode_error(self, make_client):
        client, _ = make_client(
            {f"{API}/pokemon/1": FakeResponse(payload={"name": "bulbasaur"})}
        )

        with pytest.raises(DecodeError):
            await client.fetch_one(1)

    async def test_circuit_breaker_opens_after_failures(self, make_client):
        url = f"{API}/pokemon/1"
        client, session = make_client({url: aiohttp.ClientConnectionError("down")})
        client._breaker.failure_threshold = 2

        for _ in range(2):
            with pytest.raises(NetworkError):
                await client.fetch_one(1)

        assert client._breaker.state == CircuitState.OPEN

        # Rejected without touching the network
        with pytest.raises(CircuitOpenError):
            await client.fetch_one(1)
        assert len(session.requested) == 2

    async def test_no_retry_on_failure(self, make_client):
        url = f"{API}/pokemon/1"
        client, session = make_client({url: FakeResponse(status=500)})

        with pytest.raises(NetworkError):
            await client.fetch_one(1)

        assert session.requested == [url]
