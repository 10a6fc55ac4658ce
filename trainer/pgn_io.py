"""
PGN/FEN boundary: header guard, PGN import into lines and trees, PGN export.

Imports are all-or-nothing: a PGN that fails to parse, plays an illegal move,
or starts from a custom position (FEN header) yields None and nothing else.
"""

import io
import logging
import re
from urllib.parse import quote

import chess
import chess.pgn

from models import Move, TreeNode
from move_tree import create_root, find_child_by_move, add_variation

logger = logging.getLogger(__name__)

FEN_HEADER_RE = re.compile(r'\[\s*FEN\s+"', re.IGNORECASE)
LICHESS_ANALYSIS_URL = "https://lichess.org/analysis"


def pgn_has_fen_header(text) -> bool:
    """True if text carries a [FEN "..."] tag (case-insensitive, whitespace tolerant)."""
    return bool(FEN_HEADER_RE.search(str(text or "")))


def strip_pgn_headers(pgn: str) -> str:
    """Drop the tag section, keeping the movetext."""
    if not pgn:
        return ""
    parts = re.split(r"\r?\n\r?\n", pgn)
    return "\n\n".join(parts[1:]).strip() if len(parts) > 1 else pgn.strip()


def _move_from_chess(cm: chess.Move) -> Move:
    return Move(
        from_square=chess.square_name(cm.from_square),
        to_square=chess.square_name(cm.to_square),
        promotion=chess.piece_symbol(cm.promotion) if cm.promotion else None,
    )


def _read_game(text: str) -> chess.pgn.Game | None:
    text = (text or "").strip()
    if not text or pgn_has_fen_header(text):
        return None
    game = chess.pgn.read_game(io.StringIO(text))
    if game is None or game.errors:
        return None
    return game


def line_from_pgn(text: str) -> list[Move] | None:
    """Mainline moves of a PGN, or None if it cannot be imported."""
    game = _read_game(text)
    if game is None:
        return None
    return [_move_from_chess(cm) for cm in game.mainline_moves()]


def _copy_variations(pgn_node: chess.pgn.GameNode, tree_node: TreeNode) -> None:
    for variation in pgn_node.variations:
        move = _move_from_chess(variation.move)
        child = find_child_by_move(tree_node, move) or add_variation(tree_node, move)
        _copy_variations(variation, child)


def tree_from_pgn(text: str) -> TreeNode | None:
    """Full move tree of a PGN, recursive variations included."""
    game = _read_game(text)
    if game is None:
        return None
    root = create_root()
    _copy_variations(game, root)
    return root


def _add_pgn_node(pgn_node: chess.pgn.GameNode, board: chess.Board, tree_node: TreeNode) -> None:
    """Recursively add tree children to a chess.pgn game node. First child is the main line."""
    for i, child in enumerate(tree_node.children):
        try:
            move = board.parse_uci(child.move.uci())
        except ValueError:
            logger.warning("Skipping illegal stored move %s at %s", child.move.uci(), board.fen())
            continue

        if i == 0:
            next_node = pgn_node.add_main_variation(move)
        else:
            next_node = pgn_node.add_variation(move)

        board.push(move)
        _add_pgn_node(next_node, board, child)
        board.pop()


def tree_to_pgn(root: TreeNode, headers: dict[str, str] | None = None) -> str:
    """Export a move tree as PGN with side variations."""
    game = chess.pgn.Game()
    for k, v in (headers or {}).items():
        game.headers[k] = v
    _add_pgn_node(game, chess.Board(), root)
    return str(game)


def lichess_analysis_url_from_fen(fen: str, orientation: str = "white") -> str:
    """Lichess analysis link: board_turn_castling_ep_halfmove_fullmove."""
    parts = fen.split()
    if len(parts) < 4:
        return LICHESS_ANALYSIS_URL

    halfmove = parts[4] if len(parts) > 4 else "0"
    fullmove = parts[5] if len(parts) > 5 else "1"
    fen_path = "_".join(parts[:4] + [halfmove, fullmove])
    return f"{LICHESS_ANALYSIS_URL}/standard/{quote(fen_path, safe='/_-')}?color={orientation}"
