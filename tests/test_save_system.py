from __future__ import annotations

import base64

import orjson
import pytest

import engine
from config import SAVE_VERSION
from content import default_content
from model import BuildingKey, LoopActionKey, LoopActionState, ResourceKey, TechnologyKey
from save_system import (
    FileSavePort,
    MemorySavePort,
    deserialize,
    export_save,
    import_save,
    load_game,
    save_game,
    serialize,
)

CONTENT = default_content()
QUIET = CONTENT.model_copy(update={"achievements": {}, "events": {}})


def _played_state():
    state = engine.new_game(CONTENT, 1_000.0)
    state = state.model_copy(update={"resources": {**state.resources, ResourceKey.GOLD: 500.0, ResourceKey.WOOD: 80.0}})
    state, _ = engine.buy_building(state, CONTENT, BuildingKey.WOODCUTTER)
    state, _ = engine.start_research(state, CONTENT, TechnologyKey.WRITING)
    state, _ = engine.start_loop_action(state, CONTENT, LoopActionKey.CONTINUOUS_LOGGING)
    state, _ = engine.start_loop_action(state, CONTENT, LoopActionKey.BASIC_GATHERING)
    state, _ = engine.click(state, CONTENT)
    return engine.tick(state, CONTENT, 3.37)


def test_export_import_round_trip():
    state = _played_state()
    text = export_save(state)
    restored = import_save(text)
    assert restored == state
    assert export_save(restored) == text


def test_serialized_payload_is_versioned():
    payload = orjson.loads(serialize(engine.new_game(CONTENT)))
    assert payload["version"] == SAVE_VERSION
    assert payload["state"]["resources"]["gold"] == 10


@pytest.mark.parametrize("version", [SAVE_VERSION + 1, 1, 2, "5", None])
def test_import_with_mismatched_version_is_treated_as_no_save(version):
    payload = orjson.loads(serialize(_played_state()))
    payload["version"] = version
    text = base64.b64encode(orjson.dumps(payload)).decode("ascii")
    assert import_save(text) is None


@pytest.mark.parametrize("text", ["", "not base64 !!", base64.b64encode(b"{oops").decode("ascii")])
def test_unparseable_import_is_treated_as_no_save(text):
    assert import_save(text) is None


def test_older_save_is_migrated_with_defaults():
    payload = orjson.loads(serialize(_played_state()))
    for key in ("achievements", "achievement_multipliers", "clicks", "prestige_count"):
        payload["state"].pop(key)
    payload["version"] = 4
    state = deserialize(orjson.dumps(payload))
    assert state is not None
    assert state.achievements.unlocked == {}
    assert state.achievement_multipliers.permanent.cost == 1.0
    assert state.clicks == 0


def test_invalid_state_body_is_rejected():
    payload = orjson.loads(serialize(_played_state()))
    payload["state"]["resources"]["mana"] = 5
    assert deserialize(orjson.dumps(payload)) is None


def test_file_port_round_trip(tmp_path):
    port = FileSavePort(tmp_path / "saves" / "kingdom.json")
    assert port.load() is None
    state = _played_state()
    save_game(port, state)
    assert deserialize(port.load()) == state


def test_load_game_collapses_offline_time():
    state = engine.new_game(QUIET, 0.0).model_copy(
        update={"building_counts": {BuildingKey.WOODCUTTER: 1}}
    )
    port = MemorySavePort(serialize(state))
    loaded = load_game(port, QUIET, 2 * 3600 * 1000.0)
    assert loaded.clock_ms == 2 * 3600 * 1000.0
    assert loaded.resources[ResourceKey.WOOD] == pytest.approx(1.2 * 3600)


def test_load_game_without_save_starts_fresh():
    state = load_game(MemorySavePort(), CONTENT, 99.0)
    assert state == engine.new_game(CONTENT, 99.0)

    broken = load_game(MemorySavePort(b"garbage"), CONTENT, 5.0)
    assert broken == engine.new_game(CONTENT, 5.0)


def _tampered(edit):
    payload = orjson.loads(serialize(_played_state()))
    edit(payload["state"])
    return orjson.dumps(payload)


@pytest.mark.parametrize(
    "edit",
    [
        lambda s: s["resources"].update(gold=-500),
        lambda s: s["lifetime_resources"].update(wood=-1),
        lambda s: s["building_counts"].update(woodcutter=-3),
        lambda s: s["upgrade_levels"].update(royal_decrees=-1),
        lambda s: s["technology_levels"].update(writing=2),
        lambda s: s.update(clicks=-1),
        lambda s: s.update(loop_tick_carry=1.5),
    ],
)
def test_save_with_impossible_values_is_treated_as_no_save(edit):
    assert deserialize(_tampered(edit)) is None


def test_save_with_more_active_loops_than_slots_is_rejected():
    def edit(state):
        keys = (LoopActionKey.BASIC_GATHERING, LoopActionKey.CONTINUOUS_MINING, LoopActionKey.CONTINUOUS_LOGGING)
        state["loop_actions"] = [LoopActionState(action_id=key).model_dump(mode="json") for key in keys]
        state["loop_settings"]["max_concurrent_actions"] = 2

    assert deserialize(_tampered(edit)) is None


def test_save_with_duplicate_loop_entries_is_rejected():
    def edit(state):
        state["loop_settings"]["max_concurrent_actions"] = 5
        entry = LoopActionState(action_id=LoopActionKey.BASIC_GATHERING, is_active=False).model_dump(mode="json")
        state["loop_actions"] = [entry, dict(entry)]

    assert deserialize(_tampered(edit)) is None


def test_event_state_survives_round_trip():
    state = engine.new_game(CONTENT, 0.0, seed=99)
    state = engine.tick(state, CONTENT, 31)
    assert state.events.active_event is not None
    restored = import_save(export_save(state))
    assert restored.events == state.events
    assert engine.tick(restored, CONTENT, 45) == engine.tick(state, CONTENT, 45)


def test_version_five_save_gets_default_event_state():
    payload = orjson.loads(serialize(_played_state()))
    payload["state"].pop("events")
    payload["version"] = 5
    state = deserialize(orjson.dumps(payload))
    assert state is not None
    assert state.events.history == ()
    assert state.events.active_event is None
