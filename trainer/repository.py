"""
Opening repository: CRUD over openings and legacy studies, schema-versioned
(de)serialization, storage wrappers and legacy single-PGN migration.

Storage is any object exposing get_item(key) -> str | None and
set_item(key, value: str). Schema mismatches and malformed payloads raise;
a dangling active id or missing children arrays are normalized silently.
"""

import json
import logging
import time
import uuid
from dataclasses import replace

from models import (
    AppState,
    Move,
    Opening,
    RepositoryConfig,
    Study,
    TreeNode,
)
from pgn_io import tree_from_pgn
from move_tree import create_root
from tree_session import TreeSession, path_moves

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = RepositoryConfig()
VALID_SIDES = ("white", "black")
MIGRATED_NAME = "Migrated opening"
STUDY_FIELDS = ("name", "color", "pgn", "created_at", "updated_at")


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


# --- openings ---


def create_opening(name: str, train_as: str) -> Opening:
    """New opening with an empty tree. Raises ValueError on blank name or bad side."""
    name = (name or "").strip()
    if not name:
        raise ValueError("opening name must not be empty")
    if train_as not in VALID_SIDES:
        raise ValueError(f"train_as must be 'white' or 'black', got {train_as!r}")
    ts = now_ms()
    return Opening(id=new_id(), name=name, train_as=train_as, root=create_root(), created_at=ts, updated_at=ts)


def create_empty_app_state(config: RepositoryConfig = DEFAULT_CONFIG) -> AppState:
    return AppState(schema_version=config.schema_version, openings=[], active_opening_id=None)


def pick_opening(state: AppState, opening_id: str | None) -> Opening | None:
    for o in state.openings:
        if o.id == opening_id:
            return o
    return None


def add_opening(state: AppState, opening: Opening) -> None:
    if pick_opening(state, opening.id) is not None:
        raise ValueError(f"duplicate opening id {opening.id}")
    state.openings.append(opening)


def set_active_opening(state: AppState, opening_id: str | None) -> Opening | None:
    if opening_id is None:
        state.active_opening_id = None
        return None
    opening = pick_opening(state, opening_id)
    if opening is None:
        raise KeyError(opening_id)
    state.active_opening_id = opening_id
    return opening


def delete_opening(state: AppState, opening_id: str) -> bool:
    """Remove an opening. If it was active, the first remaining one becomes active."""
    before = len(state.openings)
    state.openings = [o for o in state.openings if o.id != opening_id]
    if len(state.openings) == before:
        return False
    if state.active_opening_id == opening_id:
        state.active_opening_id = state.openings[0].id if state.openings else None
    return True


def touch_opening(opening: Opening, session: TreeSession | None = None) -> Opening:
    """Record the session cursor as last_path and bump updated_at."""
    if session is not None:
        opening.last_path = path_moves(session)
    opening.updated_at = now_ms()
    return opening


# --- studies (legacy single-line records) ---


def create_study(name: str = "", color: str = "white") -> Study:
    ts = now_ms()
    return Study(
        id=new_id(),
        name=(name or "").strip() or "New opening",
        color="black" if color == "black" else "white",
        pgn="",
        created_at=ts,
        updated_at=ts,
    )


def update_study(study: Study, **changes) -> Study:
    """Field-by-field update. Unknown fields raise TypeError."""
    unknown = set(changes) - set(STUDY_FIELDS)
    if unknown:
        raise TypeError(f"unknown study fields: {sorted(unknown)}")
    return replace(study, **changes)


def upsert_study(studies: list[Study], item: Study) -> list[Study]:
    """New list with item replacing the study of the same id, or appended."""
    out = []
    found = False
    for s in studies:
        if s.id == item.id:
            out.append(update_study(s, **{f: getattr(item, f) for f in STUDY_FIELDS}))
            found = True
        else:
            out.append(s)
    if not found:
        out.append(item)
    return out


def pick_study(studies: list[Study], study_id: str | None) -> Study | None:
    for s in studies:
        if s.id == study_id:
            return s
    return None


def migrate_legacy_pgn(legacy_pgn: str | None, existing_studies: list[Study]) -> tuple[list[Study], str | None]:
    """
    One-time move of the old single-PGN store into a study.
    Returns (studies, active_study_id).
    """
    if existing_studies:
        return existing_studies, existing_studies[0].id
    if not legacy_pgn:
        return [], None

    s = create_study(MIGRATED_NAME, "white")
    s = update_study(s, pgn=legacy_pgn)
    return [s], s.id


def study_to_dict(s: Study) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "color": s.color,
        "pgn": s.pgn,
        "createdAt": s.created_at,
        "updatedAt": s.updated_at,
    }


def study_from_dict(data: dict) -> Study:
    return Study(
        id=str(data["id"]),
        name=data.get("name") or "New opening",
        color="black" if data.get("color") == "black" else "white",
        pgn=data.get("pgn") or "",
        created_at=int(data.get("createdAt") or 0),
        updated_at=int(data.get("updatedAt") or 0),
    )


def load_studies(storage, config: RepositoryConfig = DEFAULT_CONFIG) -> list[Study]:
    """Stored studies; unreadable data is logged and treated as none."""
    _check_storage(storage)
    raw = storage.get_item(config.studies_key)
    if not raw:
        return []
    try:
        return [study_from_dict(d) for d in json.loads(raw)]
    except (ValueError, TypeError, KeyError) as e:
        logger.warning("Failed to parse studies under %s: %s", config.studies_key, e)
        return []


def save_studies(storage, studies: list[Study], active_study_id: str | None, config: RepositoryConfig = DEFAULT_CONFIG) -> None:
    _check_storage(storage)
    storage.set_item(config.studies_key, json.dumps([study_to_dict(s) for s in studies]))
    if active_study_id:
        storage.set_item(config.active_study_key, active_study_id)


def opening_from_study(study: Study) -> Opening:
    """Tree opening from a legacy study. An unreadable PGN gives an empty tree."""
    root = tree_from_pgn(study.pgn) if study.pgn else None
    if root is None:
        if study.pgn:
            logger.warning("Study %s has an unreadable PGN, starting empty", study.id)
        root = create_root()
    return Opening(
        id=study.id,
        name=study.name,
        train_as=study.color,
        root=root,
        created_at=study.created_at,
        updated_at=study.updated_at,
    )


# --- serialization ---


def serialize_tree(node: TreeNode) -> dict:
    return {
        "move": node.move.to_dict() if node.move is not None else None,
        "children": [serialize_tree(c) for c in node.children],
    }


def deserialize_tree(data: dict, is_root: bool = True) -> TreeNode:
    """Rebuild a tree, filling in missing children arrays. Every non-root node needs a move."""
    if not isinstance(data, dict):
        raise ValueError("tree node must be an object")
    move = data.get("move")
    if is_root and move is not None:
        raise ValueError("root node must not carry a move")
    if not is_root and move is None:
        raise ValueError("non-root tree node is missing its move")
    children = data.get("children") or []
    if not isinstance(children, list):
        raise ValueError("tree node children must be an array")
    return TreeNode(
        move=Move.from_dict(move) if move is not None else None,
        children=[deserialize_tree(c, is_root=False) for c in children],
    )


def opening_to_dict(o: Opening) -> dict:
    return {
        "id": o.id,
        "name": o.name,
        "trainAs": o.train_as,
        "root": serialize_tree(o.root),
        "lastPath": [m.to_dict() for m in o.last_path],
        "createdAt": o.created_at,
        "updatedAt": o.updated_at,
    }


def opening_from_dict(data: dict) -> Opening:
    if not isinstance(data, dict):
        raise ValueError("opening must be an object")
    if not isinstance(data.get("name"), str) or not data["name"].strip():
        raise ValueError(f"opening {data.get('id')!r} has an empty name")
    if data.get("trainAs") not in VALID_SIDES:
        raise ValueError(f"opening trainAs must be 'white' or 'black', got {data.get('trainAs')!r}")
    try:
        return Opening(
            id=str(data["id"]),
            name=data["name"],
            train_as=data["trainAs"],
            root=deserialize_tree(data.get("root") or {}),
            last_path=[Move.from_dict(m) for m in data.get("lastPath") or []],
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
        )
    except KeyError as e:
        raise ValueError(f"opening is missing field {e}") from e


def serialize_app_state(state: AppState, config: RepositoryConfig = DEFAULT_CONFIG) -> str:
    return json.dumps({
        "schemaVersion": config.schema_version,
        "openings": [opening_to_dict(o) for o in state.openings],
        "activeOpeningId": state.active_opening_id,
    })


def deserialize_app_state(text: str, config: RepositoryConfig = DEFAULT_CONFIG) -> AppState:
    """Parse stored state. Raises ValueError on bad JSON, shape or schemaVersion."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("app state must be a JSON object")
    version = data.get("schemaVersion")
    if version != config.schema_version:
        raise ValueError(f"unsupported schemaVersion {version!r} (expected {config.schema_version})")
    openings = data.get("openings")
    if not isinstance(openings, list):
        raise ValueError("app state openings must be an array")

    state = AppState(
        schema_version=config.schema_version,
        active_opening_id=data.get("activeOpeningId"),
    )
    for o in openings:
        add_opening(state, opening_from_dict(o))
    if state.active_opening_id is not None and pick_opening(state, state.active_opening_id) is None:
        logger.info("Active opening %s not found, clearing", state.active_opening_id)
        state.active_opening_id = None
    return state


# --- storage ---


def _check_storage(storage) -> None:
    for name in ("get_item", "set_item"):
        if not callable(getattr(storage, name, None)):
            raise TypeError(f"storage adapter must provide {name}()")


def save_to_storage(state: AppState, storage, config: RepositoryConfig = DEFAULT_CONFIG) -> None:
    _check_storage(storage)
    storage.set_item(config.storage_key, serialize_app_state(state, config))


def load_from_storage(storage, config: RepositoryConfig = DEFAULT_CONFIG) -> AppState:
    """Stored state, or a fresh empty state when nothing is stored under the key."""
    _check_storage(storage)
    raw = storage.get_item(config.storage_key)
    if raw is None:
        return create_empty_app_state(config)
    return deserialize_app_state(raw, config)


def boot(storage, config: RepositoryConfig = DEFAULT_CONFIG) -> AppState:
    """
    Load app state. When no state has ever been stored, fold legacy studies
    (or the legacy single PGN) into openings and persist once. Any stored
    state, even one with no openings left, means migration already ran.
    """
    _check_storage(storage)
    raw = storage.get_item(config.storage_key)
    if raw is not None:
        return deserialize_app_state(raw, config)
    state = create_empty_app_state(config)

    studies, active_id = migrate_legacy_pgn(
        storage.get_item(config.legacy_pgn_key), load_studies(storage, config)
    )
    if not studies:
        return state

    stored_active = storage.get_item(config.active_study_key)
    state.openings = [opening_from_study(s) for s in studies]
    state.active_opening_id = stored_active if pick_opening(state, stored_active) else active_id
    save_to_storage(state, storage, config)
    logger.info("Migrated %d legacy studies into openings", len(studies))
    return state
