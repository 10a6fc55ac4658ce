"""
Position keys and the transposition index.

A position key keeps piece placement, side to move, castling rights and the
en-passant square of a FEN and drops the move counters, so two move orders
reaching the same position share a key.
"""

import chess

from models import TreeNode
from move_tree import iter_nodes

PositionIndex = dict[str, list[TreeNode]]


def position_key_from_fen(fen: str) -> str:
    if not isinstance(fen, str):
        raise TypeError("fen must be a string")

    parts = fen.split()
    if len(parts) < 4:
        raise ValueError(f"invalid FEN (need at least 4 fields): {fen!r}")

    pieces, turn, castling, ep = parts[:4]
    return f"{pieces} {turn} {castling or '-'} {ep or '-'}"


def position_key_from_board(board) -> str:
    """Convenience wrapper for anything with a fen() method (chess.Board)."""
    if board is None or not callable(getattr(board, "fen", None)):
        raise TypeError("board must provide fen()")
    return position_key_from_fen(board.fen())


def create_position_index() -> PositionIndex:
    return {}


def index_node(index: PositionIndex, key: str, node: TreeNode) -> None:
    """Append node under key; several nodes may share one key."""
    index.setdefault(key, []).append(node)


def index_tree(index: PositionIndex, root: TreeNode) -> int:
    """Index every node of a tree by replaying it from the start. Returns count indexed."""
    count = 0
    for node, path in iter_nodes(root):
        board = chess.Board()
        try:
            for move in path:
                board.push_uci(move.uci())
        except ValueError:
            continue
        index_node(index, position_key_from_board(board), node)
        count += 1
    return count


def find_transpositions(index: PositionIndex) -> list[tuple[TreeNode, TreeNode]]:
    """Every unordered pair of distinct nodes that share a position key."""
    links = []
    for nodes in index.values():
        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                if nodes[i] is nodes[j]:
                    continue
                links.append((nodes[i], nodes[j]))
    return links
