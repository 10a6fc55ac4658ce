"""Tests for move_tree.py"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from models import Move
from move_tree import (
    add_variation,
    build_tree_from_line,
    count_nodes,
    create_node,
    create_root,
    find_child_by_move,
    iter_nodes,
    mainline,
    same_move,
)

E4 = Move("e2", "e4")
E5 = Move("e7", "e5")
NF3 = Move("g1", "f3")
C5 = Move("c7", "c5")


def test_create_root_is_empty():
    root = create_root()
    assert root.move is None
    assert root.children == []


def test_create_node_wraps_move():
    node = create_node(E4)
    assert node.move == E4
    assert node.children == []


def test_build_tree_from_line_is_single_branch():
    root = build_tree_from_line([E4, E5, NF3])
    assert len(root.children) == 1
    assert root.children[0].move == E4
    assert root.children[0].children[0].move == E5
    assert root.children[0].children[0].children[0].move == NF3
    assert root.children[0].children[0].children[0].children == []


def test_build_tree_from_empty_line_returns_bare_root():
    root = build_tree_from_line([])
    assert root.move is None
    assert root.children == []


def test_same_move_compares_promotion():
    assert same_move(Move("e7", "e8", "q"), Move("e7", "e8", "q"))
    assert not same_move(Move("e7", "e8", "q"), Move("e7", "e8", "n"))
    assert not same_move(Move("e7", "e8", "q"), Move("e7", "e8"))
    assert same_move(E4, Move("e2", "e4"))


def test_find_child_by_move():
    root = create_root()
    e4 = add_variation(root, E4)
    add_variation(root, Move("d2", "d4"))
    assert find_child_by_move(root, Move("e2", "e4")) is e4
    assert find_child_by_move(root, NF3) is None


def test_add_variation_appends_unconditionally():
    root = create_root()
    first = add_variation(root, E4)
    second = add_variation(root, E4)
    assert root.children == [first, second]
    assert first is not second


def test_mainline_follows_first_children():
    root = build_tree_from_line([E4, E5, NF3])
    add_variation(root.children[0], C5)
    assert mainline(root) == [E4, E5, NF3]


def test_iter_nodes_yields_paths_depth_first():
    root = build_tree_from_line([E4, E5])
    add_variation(root.children[0], C5)
    paths = [path for _, path in iter_nodes(root)]
    assert paths == [[], [E4], [E4, E5], [E4, C5]]
    assert count_nodes(root) == 3


def test_move_rejects_unknown_promotion_piece():
    with pytest.raises(ValueError, match="promotion"):
        Move("e7", "e8", "k")
    with pytest.raises(ValueError, match="promotion"):
        Move.from_dict({"from": "e7", "to": "e8", "promotion": "x"})
    assert Move.from_uci("e7e8q").promotion == "q"


@pytest.mark.parametrize("data", ["e2e4", None, {"to": "e4"}])
def test_move_from_dict_rejects_malformed_input(data):
    with pytest.raises(ValueError):
        Move.from_dict(data)
