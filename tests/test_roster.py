import logging

import pytest

from conftest import pokemon_payload, summary
from pokedex.constants import ERROR_EMPTY_TEAM
from pokedex.errors import DecodeError, ValidationError
from pokedex.models import parse_entity_detail
from pokedex.roster import (
    Roster,
    RosterRepository,
    TeamRoster,
    decode_rosters,
    encode_rosters,
    team_weaknesses,
    type_distribution,
)
from pokedex.storage import MemoryKeyValueStore

PIKACHU = summary(25, "pikachu", ("electric",), 4, 60)
CHARIZARD = summary(6, "charizard", ("fire", "flying"), 17, 905)
GYARADOS = summary(130, "gyarados", ("water", "flying"), 65, 2350)


class TestTeamRoster:
    def test_starts_empty(self):
        team = TeamRoster()
        assert team.slots == (None,) * 6
        assert team.snapshot().is_empty

    def test_assign_overwrites(self):
        team = TeamRoster()
        team.assign(0, PIKACHU)
        team.assign(0, CHARIZARD)
        assert team.slots[0] == CHARIZARD
        assert team.slots[1:] == (None,) * 5

    def test_assign_stores_summary_only(self):
        detail = parse_entity_detail(pokemon_payload(25, "pikachu", ("electric",)))
        team = TeamRoster()
        team.assign(2, detail)
        assert type(team.slots[2]).__name__ == "EntitySummary"
        assert team.slots[2].id == 25

    def test_clear(self):
        team = TeamRoster()
        team.assign(5, PIKACHU)
        team.clear(5)
        assert team.slots[5] is None

    @pytest.mark.parametrize("index", [-1, 6, 100])
    def test_out_of_range(self, index):
        team = TeamRoster()
        with pytest.raises(IndexError):
            team.assign(index, PIKACHU)
        with pytest.raises(IndexError):
            team.clear(index)

    def test_add_fills_first_empty_slot(self):
        team = TeamRoster()
        team.assign(0, CHARIZARD)
        assert team.add(PIKACHU) == 1
        team.clear(0)
        assert team.add(GYARADOS) == 0

    def test_add_when_full(self):
        team = TeamRoster()
        for _ in range(6):
            team.add(PIKACHU)
        assert team.add(CHARIZARD) is None
        assert CHARIZARD not in team.slots

    def test_restore(self):
        roster = Roster("Rain", (GYARADOS, None, None, None, None, PIKACHU))
        team = TeamRoster()
        team.restore(roster)
        assert team.name == "Rain"
        assert team.slots == roster.slots
        team.clear(0)
        assert roster.slots[0] == GYARADOS


def test_roster_requires_six_slots():
    with pytest.raises(ValidationError):
        Roster("Short", (PIKACHU,))


class TestComposition:
    def test_type_distribution_counts_dual_types(self):
        slots = (PIKACHU, CHARIZARD, None, GYARADOS, None, None)
        assert type_distribution(slots) == {
            "electric": 1,
            "fire": 1,
            "flying": 2,
            "water": 1,
        }

    def test_type_distribution_empty(self):
        assert type_distribution((None,) * 6) == {}

    def test_team_weaknesses(self):
        weak = team_weaknesses((CHARIZARD, GYARADOS, None, None, None, None))
        # Rock hits both; Water only hurts Charizard
        assert weak["rock"] == 2
        assert weak["electric"] == 2
        assert weak["water"] == 1
        assert weak["ground"] == 0
        assert len(weak) == 18

    def test_team_weaknesses_skips_unknown_types(self):
        odd = summary(999, "missingno", ("bird",))
        weak = team_weaknesses((odd, PIKACHU, None, None, None, None))
        assert weak["ground"] == 1


class TestSerialization:
    def test_encoded_document_shape(self):
        roster = Roster("Team", (PIKACHU, None, None, None, None, None))
        document = encode_rosters([roster])

        assert document["version"] == 1
        stored = document["rosters"][0]
        assert stored["name"] == "Team"
        assert len(stored["slots"]) == 6
        assert stored["slots"][0]["types"] == ["electric"]
        assert stored["slots"][1] is None
        assert decode_rosters(document) == [roster]

    def test_missing_document(self):
        assert decode_rosters(None) == []

    def test_legacy_list_is_upgraded(self):
        legacy = [
            {
                "name": "Old team",
                "team": [pokemon_payload(6, "charizard", ("fire", "flying"), 17, 905)],
            }
        ]

        (roster,) = decode_rosters(legacy)

        assert roster.name == "Old team"
        assert roster.slots[0].name == "charizard"
        assert roster.slots[0].types == ("fire", "flying")
        assert roster.slots[0].sprites.official_artwork == "https://art.test/6.png"
        assert roster.slots[1:] == (None,) * 5

    @pytest.mark.parametrize(
        "document",
        [
            {"version": 2, "rosters": []},
            {"rosters": []},
            "garbage",
            {"version": 1, "rosters": [{"slots": [None] * 6}]},
            {"version": 1, "rosters": [{"name": "x", "slots": [None] * 7}]},
            {"version": 1, "rosters": [{"name": "x", "slots": [{"name": "no id"}]}]},
        ],
    )
    def test_invalid_documents(self, document):
        with pytest.raises(DecodeError):
            decode_rosters(document)


@pytest.mark.asyncio
class TestRosterRepository:
    async def test_empty_store(self, memory_store):
        repo = RosterRepository(memory_store)
        assert await repo.load_all() == []
        assert len(repo) == 0

    async def test_save_all_empty_is_rejected(self, memory_store):
        repo = RosterRepository(memory_store)

        with pytest.raises(ValidationError) as exc_info:
            await repo.save("Nothing", (None,) * 6)

        assert str(exc_info.value) == ERROR_EMPTY_TEAM
        assert len(repo) == 0
        assert await memory_store.load("pokemonTeams") is None

    async def test_save_one_member_grows_store(self, memory_store):
        repo = RosterRepository(memory_store)
        team = TeamRoster()
        team.assign(3, PIKACHU)

        saved = await repo.save("Solo", team.slots)

        assert len(repo) == 1
        assert saved.members == [PIKACHU]
        stored = await memory_store.load("pokemonTeams")
        assert stored["rosters"][0]["slots"][3]["name"] == "pikachu"

    async def test_duplicate_names_allowed(self, memory_store):
        repo = RosterRepository(memory_store)
        slots = (PIKACHU,) + (None,) * 5

        await repo.save("Same", slots)
        await repo.save("Same", slots)

        assert [r.name for r in repo.rosters] == ["Same", "Same"]

    async def test_blank_name_uses_default(self, memory_store):
        repo = RosterRepository(memory_store)
        saved = await repo.save("   ", (PIKACHU,) + (None,) * 5)
        assert saved.name == "My Pokémon Team"

    async def test_saved_roster_is_a_snapshot(self, memory_store):
        repo = RosterRepository(memory_store)
        team = TeamRoster()
        team.assign(0, PIKACHU)
        await repo.save("Snap", team.slots)

        team.assign(0, CHARIZARD)

        assert repo.load(0).slots[0] == PIKACHU

    async def test_load_out_of_range(self, memory_store):
        repo = RosterRepository(memory_store)
        await repo.save("One", (PIKACHU,) + (None,) * 5)

        with pytest.raises(IndexError):
            repo.load(1)
        with pytest.raises(IndexError):
            repo.load(-1)

    async def test_delete_persists(self, memory_store):
        repo = RosterRepository(memory_store)
        await repo.save("First", (PIKACHU,) + (None,) * 5)
        await repo.save("Second", (CHARIZARD,) + (None,) * 5)

        removed = await repo.delete(0)

        assert removed.name == "First"
        reloaded = RosterRepository(memory_store)
        assert [r.name for r in await reloaded.load_all()] == ["Second"]

    async def test_delete_out_of_range(self, memory_store):
        repo = RosterRepository(memory_store)
        with pytest.raises(IndexError):
            await repo.delete(0)

    async def test_round_trip_through_store(self, memory_store):
        repo = RosterRepository(memory_store)
        await repo.save("Flyers", (CHARIZARD, None, GYARADOS, None, None, None))

        reloaded = RosterRepository(memory_store)
        (roster,) = await reloaded.load_all()

        assert roster.slots == (CHARIZARD, None, GYARADOS, None, None, None)

    async def test_unknown_version_fails_load(self):
        store = MemoryKeyValueStore({"pokemonTeams": {"version": 99, "rosters": []}})
        with pytest.raises(DecodeError):
            await RosterRepository(store).load_all()

    async def test_failed_write_is_logged(self, memory_store, mocker, caplog):
        mocker.patch.object(memory_store, "save", mocker.AsyncMock(return_value=False))
        repo = RosterRepository(memory_store)

        with caplog.at_level(logging.ERROR, logger="pokedex.roster"):
            await repo.save("Lost", (PIKACHU,) + (None,) * 5)

        assert "Failed to persist roster store" in caplog.text
        # The in-memory list still reflects the save
        assert len(repo) == 1
        assert repo.unsaved_changes is True

    async def test_successful_write_clears_unsaved_changes(self, memory_store, mocker):
        repo = RosterRepository(memory_store)
        mocker.patch.object(memory_store, "save", mocker.AsyncMock(return_value=False))
        await repo.save("Lost", (PIKACHU,) + (None,) * 5)
        assert repo.unsaved_changes is True

        mocker.patch.object(memory_store, "save", mocker.AsyncMock(return_value=True))
        await repo.delete(0)

        assert repo.unsaved_changes is False
        memory_store.save.assert_awaited_once()
