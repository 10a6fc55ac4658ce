"""Tests for repository.py"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from models import Move, RepositoryConfig, Study
from move_tree import build_tree_from_line, mainline
from repository import (
    add_opening,
    boot,
    create_empty_app_state,
    create_opening,
    create_study,
    delete_opening,
    deserialize_app_state,
    deserialize_tree,
    load_from_storage,
    load_studies,
    migrate_legacy_pgn,
    opening_from_study,
    pick_opening,
    pick_study,
    save_studies,
    save_to_storage,
    serialize_app_state,
    set_active_opening,
    touch_opening,
    update_study,
    upsert_study,
)
from tree_session import add_variation_and_go, create_tree_session

CARO_KANN = [Move("e2", "e4"), Move("c7", "c6"), Move("d2", "d4"), Move("d7", "d5")]


def test_create_opening_trims_name_and_starts_empty():
    o = create_opening("  Caro-Kann ", "black")
    assert o.name == "Caro-Kann"
    assert o.train_as == "black"
    assert o.root.move is None
    assert o.root.children == []
    assert o.id


def test_create_opening_ids_are_unique():
    assert create_opening("A", "white").id != create_opening("A", "white").id


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_opening_rejects_blank_name(name):
    with pytest.raises(ValueError):
        create_opening(name, "white")


def test_create_opening_rejects_invalid_side():
    with pytest.raises(ValueError):
        create_opening("Italian", "White")


def test_roundtrip_keeps_fields_and_tree_shape():
    o = create_opening("Caro-Kann", "black")
    o.root = build_tree_from_line(CARO_KANN)
    session = create_tree_session(o.root)
    add_variation_and_go(session, Move("d2", "d4"))
    touch_opening(o, session)

    state = create_empty_app_state()
    add_opening(state, o)
    state.active_opening_id = o.id

    loaded = deserialize_app_state(serialize_app_state(state))

    assert loaded.active_opening_id == o.id
    lo = loaded.openings[0]
    assert (lo.id, lo.name, lo.train_as) == (o.id, "Caro-Kann", "black")
    assert mainline(lo.root) == CARO_KANN
    assert [c.move for c in lo.root.children] == [Move("e2", "e4"), Move("d2", "d4")]
    assert lo.last_path == [Move("d2", "d4")]


def test_promotion_survives_roundtrip():
    o = create_opening("Promo", "white")
    o.root = build_tree_from_line([Move("e7", "e8", "q")])
    state = create_empty_app_state()
    add_opening(state, o)
    loaded = deserialize_app_state(serialize_app_state(state))
    assert loaded.openings[0].root.children[0].move == Move("e7", "e8", "q")


def test_dangling_active_id_becomes_none():
    state = create_empty_app_state()
    add_opening(state, create_opening("Sicilian", "black"))
    state.active_opening_id = "does-not-exist"
    loaded = deserialize_app_state(serialize_app_state(state))
    assert loaded.active_opening_id is None


def test_deserialize_rejects_other_schema_version():
    bad = json.dumps({"schemaVersion": 999, "openings": [], "activeOpeningId": None})
    with pytest.raises(ValueError, match="schemaVersion"):
        deserialize_app_state(bad)


def test_deserialize_rejects_invalid_json():
    with pytest.raises(ValueError):
        deserialize_app_state("{not valid json")


@pytest.mark.parametrize("payload", [
    [],
    {"schemaVersion": 1},
    {"schemaVersion": 1, "openings": {}},
])
def test_deserialize_rejects_malformed_payload(payload):
    with pytest.raises(ValueError):
        deserialize_app_state(json.dumps(payload))


def test_deserialize_tree_fills_missing_children():
    root = deserialize_tree({"move": None, "children": [{"move": {"from": "e2", "to": "e4"}}]})
    assert root.children[0].move == Move("e2", "e4")
    assert root.children[0].children == []


@pytest.mark.parametrize("child", [
    {"children": []},
    {"move": None},
    {"move": "e2e4"},
    {"move": {"from": "e2"}},
])
def test_deserialize_tree_rejects_child_without_valid_move(child):
    with pytest.raises(ValueError):
        deserialize_tree({"move": None, "children": [child]})


def test_deserialize_tree_rejects_root_with_move():
    with pytest.raises(ValueError, match="root"):
        deserialize_tree({"move": {"from": "e2", "to": "e4"}, "children": []})


def _opening_payload(opening_id, name="Italian", children=None):
    return {
        "id": opening_id,
        "name": name,
        "trainAs": "white",
        "root": {"move": None, "children": children or []},
    }


def test_deserialize_app_state_rejects_moveless_child():
    payload = {
        "schemaVersion": 1,
        "openings": [_opening_payload("a", children=[{"children": []}])],
        "activeOpeningId": "a",
    }
    with pytest.raises(ValueError, match="missing its move"):
        deserialize_app_state(json.dumps(payload))


def test_deserialize_app_state_rejects_duplicate_ids():
    payload = {
        "schemaVersion": 1,
        "openings": [_opening_payload("a"), _opening_payload("a", name="Sicilian")],
        "activeOpeningId": "a",
    }
    with pytest.raises(ValueError, match="duplicate"):
        deserialize_app_state(json.dumps(payload))


@pytest.mark.parametrize("name", ["", "   ", None])
def test_deserialize_app_state_rejects_blank_name(name):
    payload = {"schemaVersion": 1, "openings": [_opening_payload("a", name=name)], "activeOpeningId": None}
    with pytest.raises(ValueError, match="empty name"):
        deserialize_app_state(json.dumps(payload))


def test_separate_configs_use_separate_keys(storage):
    a = RepositoryConfig(storage_key="a")
    b = RepositoryConfig(storage_key="b")
    state = create_empty_app_state(a)
    add_opening(state, create_opening("Italian", "white"))
    save_to_storage(state, storage, a)
    assert load_from_storage(storage, a).openings[0].name == "Italian"
    assert load_from_storage(storage, b).openings == []


def test_storage_roundtrip(storage):
    o = create_opening("Italian", "white")
    state = create_empty_app_state()
    add_opening(state, o)
    state.active_opening_id = o.id

    save_to_storage(state, storage)
    loaded = load_from_storage(storage)

    assert loaded.active_opening_id == o.id
    assert loaded.openings[0].id == o.id
    assert loaded.openings[0].train_as == "white"


def test_load_missing_key_returns_empty_state(storage):
    assert load_from_storage(storage) == create_empty_app_state()


def test_storage_adapter_must_have_methods():
    with pytest.raises(TypeError):
        load_from_storage(object())


def test_delete_active_opening_moves_active_reference():
    state = create_empty_app_state()
    a, b = create_opening("A", "white"), create_opening("B", "black")
    add_opening(state, a)
    add_opening(state, b)
    set_active_opening(state, a.id)

    assert delete_opening(state, a.id) is True
    assert state.active_opening_id == b.id
    assert delete_opening(state, b.id) is True
    assert state.active_opening_id is None
    assert delete_opening(state, "missing") is False


def test_delete_inactive_opening_keeps_active():
    state = create_empty_app_state()
    a, b = create_opening("A", "white"), create_opening("B", "black")
    add_opening(state, a)
    add_opening(state, b)
    set_active_opening(state, b.id)
    delete_opening(state, a.id)
    assert state.active_opening_id == b.id


def test_set_active_unknown_id_raises():
    with pytest.raises(KeyError):
        set_active_opening(create_empty_app_state(), "nope")


def test_pick_opening_missing_is_none():
    assert pick_opening(create_empty_app_state(), "x") is None


def test_create_study_defaults():
    s = create_study("  ", "purple")
    assert s.name == "New opening"
    assert s.color == "white"
    assert s.created_at > 0
    assert create_study("French", "black").color == "black"


def test_upsert_study_merges_and_returns_new_list():
    s = create_study("French", "black")
    studies = [s]
    updated = upsert_study(studies, update_study(s, pgn="1. e4 e6"))
    assert studies[0].pgn == ""
    assert updated[0].pgn == "1. e4 e6"
    assert updated[0].name == "French"
    other = create_study("Slav")
    assert len(upsert_study(updated, other)) == 2


def test_update_study_rejects_unknown_fields():
    with pytest.raises(TypeError):
        update_study(create_study("x"), colour="black")


def test_pick_study():
    s = create_study("x")
    assert pick_study([s], s.id) is s
    assert pick_study([s], "nope") is None


def test_migrate_legacy_pgn():
    existing = [create_study("Old")]
    assert migrate_legacy_pgn("1. e4", existing) == (existing, existing[0].id)
    assert migrate_legacy_pgn(None, []) == ([], None)

    studies, active = migrate_legacy_pgn("1. e4 e5", [])
    assert len(studies) == 1
    assert studies[0].name == "Migrated opening"
    assert studies[0].color == "white"
    assert studies[0].pgn == "1. e4 e5"
    assert active == studies[0].id


def test_corrupt_studies_are_treated_as_empty(storage):
    storage.set_item(RepositoryConfig().studies_key, "{oops")
    assert load_studies(storage) == []


def test_studies_roundtrip(storage):
    s = update_study(create_study("French", "black"), pgn="1. e4 e6")
    save_studies(storage, [s], s.id)
    assert load_studies(storage) == [s]
    assert storage.get_item(RepositoryConfig().active_study_key) == s.id


def test_opening_from_study_builds_tree():
    s = Study(id="s1", name="Italian", color="white", pgn="1. e4 e5 2. Nf3 (2. Bc4) 2... Nc6")
    o = opening_from_study(s)
    assert o.id == "s1"
    assert o.train_as == "white"
    assert [c.move for c in o.root.children[0].children[0].children] == [Move("g1", "f3"), Move("f1", "c4")]


def test_opening_from_study_with_bad_pgn_is_empty():
    o = opening_from_study(Study(id="s2", pgn="1. e5 e4"))
    assert o.root.children == []


def test_boot_migrates_legacy_pgn_once(storage):
    config = RepositoryConfig()
    storage.set_item(config.legacy_pgn_key, "1. d4 d5 2. c4")

    state = boot(storage, config)
    assert len(state.openings) == 1
    assert state.openings[0].name == "Migrated opening"
    assert state.active_opening_id == state.openings[0].id
    assert mainline(state.openings[0].root) == [Move("d2", "d4"), Move("d7", "d5"), Move("c2", "c4")]

    again = boot(storage, config)
    assert [o.id for o in again.openings] == [state.openings[0].id]


def test_boot_with_nothing_stored(storage):
    state = boot(storage)
    assert state.openings == []
    assert storage.get_item(RepositoryConfig().storage_key) is None


def test_boot_does_not_remigrate_after_deleting_everything(storage):
    config = RepositoryConfig()
    storage.set_item(config.legacy_pgn_key, "1. d4 d5")
    state = boot(storage, config)
    assert delete_opening(state, state.openings[0].id)
    save_to_storage(state, storage, config)

    again = boot(storage, config)
    assert again.openings == []
    assert again.active_opening_id is None
