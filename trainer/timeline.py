"""
Flat timeline helpers: a master line of moves plus a viewPly cursor.

Navigation only ever moves the cursor. The master line changes in exactly two
ways: appending at the end, or cutting the future when a move is played while
the cursor sits in the past (branch-on-edit).
"""

from dataclasses import dataclass
from typing import Sequence, TypeVar

from models import Color, Move

T = TypeVar("T")


@dataclass
class BranchResult:
    new_line: list
    base_ply: int
    cut: bool


def clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def clamp_ply(view_ply: int, length: int) -> int:
    return clamp(view_ply, 0, length)


def next_view_ply(view_ply: int, delta: int, line_length: int) -> int:
    return clamp(view_ply + delta, 0, line_length)


def branch_line_if_needed(full_line: list[T], view_ply: int) -> BranchResult:
    """Cut the future if the cursor is in the past. The tail is discarded."""
    ply = clamp_ply(view_ply, len(full_line))
    if ply >= len(full_line):
        return BranchResult(new_line=full_line, base_ply=len(full_line), cut=False)
    new_line = full_line[:ply]
    return BranchResult(new_line=new_line, base_ply=len(new_line), cut=True)


def apply_edit_in_past(full_line: list[T], view_ply: int) -> tuple[list[T], int]:
    """Returns (line, view_ply) after branching."""
    r = branch_line_if_needed(full_line, view_ply)
    return r.new_line, r.base_ply


def compute_last_move(full_line: Sequence, view_ply: int) -> tuple[str, str] | None:
    """Highlight pair for the cursor: None at ply 0, else the move at ply - 1."""
    ply = clamp_ply(view_ply, len(full_line))
    if ply <= 0:
        return None
    m = full_line[ply - 1]
    return (m.from_square, m.to_square)


def apply_commit(new_full_line: Sequence) -> tuple[int, tuple[str, str] | None]:
    """After a move was appended the cursor always jumps to the end."""
    view_ply = len(new_full_line)
    return view_ply, compute_last_move(new_full_line, view_ply)


def apply_jump(view_ply: int, target_ply: int, length: int) -> int:
    return clamp_ply(target_ply, length)


def is_users_turn(study_color: Color, ply: int) -> bool:
    """Even plies are white's moves."""
    white_to_move = ply % 2 == 0
    return white_to_move if study_color == "white" else not white_to_move


def expected_move(full_line: Sequence, ply: int) -> Move | None:
    """The mainline move at index ply, or None past the end."""
    if ply < 0 or ply >= len(full_line):
        return None
    m = full_line[ply]
    return Move(m.from_square, m.to_square, m.promotion)
