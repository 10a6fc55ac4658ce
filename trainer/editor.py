"""
Single-line editing mode: master line + cursor kept in sync with a move executor.

The master line is only rewritten by play_move (append, or cut-then-append when
the cursor is in the past) and by a successful import. Cursor moves replay the
executor to the cursor and never touch the line.
"""

from models import AppliedMove, Color, Move
from move_executor import ChessMoveExecutor
from pgn_io import pgn_has_fen_header
from timeline import (
    apply_commit,
    apply_edit_in_past,
    apply_jump,
    clamp_ply,
    compute_last_move,
    next_view_ply,
)
from training import handle_training_move


class LineEditor:
    def __init__(self, executor: ChessMoveExecutor | None = None):
        self.executor = executor or ChessMoveExecutor()
        self.full_line: list[AppliedMove] = []
        self.view_ply = 0
        self.full_pgn = ""
        self.commit()

    def commit(self) -> None:
        """Take the executor's history as the new master line; cursor jumps to the end."""
        self.full_line = self.executor.history()
        self.full_pgn = self.executor.pgn()
        self.view_ply, _ = apply_commit(self.full_line)

    def set_game_to_ply(self, ply: int) -> None:
        """Replay the executor to ply. A corrupted stored line leaves the cursor at the start."""
        target = clamp_ply(ply, len(self.full_line))
        try:
            self.executor.set_to_ply(self.full_line, target)
        except ValueError:
            self.view_ply = 0
            raise
        self.view_ply = target

    def go_to_ply(self, ply: int) -> None:
        self.set_game_to_ply(ply)

    def go_prev(self) -> None:
        self.go_to_ply(next_view_ply(self.view_ply, -1, len(self.full_line)))

    def go_next(self) -> None:
        self.go_to_ply(next_view_ply(self.view_ply, +1, len(self.full_line)))

    def jump_to(self, ply: int) -> None:
        self.go_to_ply(apply_jump(self.view_ply, ply, len(self.full_line)))

    def play_move(self, move: Move) -> AppliedMove | None:
        """Play a move at the cursor, cutting the future first if browsing the past."""
        line, ply = apply_edit_in_past(self.full_line, self.view_ply)
        previous = (self.full_line, self.view_ply)
        if len(line) != len(self.full_line):
            # the line is only cut once the kept prefix replays cleanly
            try:
                self.executor.set_to_ply(line, ply)
            except ValueError:
                self.view_ply = 0
                raise
            self.full_line, self.view_ply = line, ply

        applied = self.executor.make_move(move)
        if applied is None:
            self.full_line, self.view_ply = previous
            self.executor.set_to_ply(self.full_line, self.view_ply)
            return None

        self.commit()
        return applied

    def training_move(self, study_color: Color, move: Move):
        return handle_training_move(
            self.full_line,
            self.view_ply,
            study_color,
            self.play_move,
            self.set_game_to_ply,
            move,
        )

    def import_pgn(self, text: str) -> bool:
        """Replace the line with a PGN mainline. Nothing changes on failure."""
        text = (text or "").strip()
        if not text or pgn_has_fen_header(text):
            return False
        if not self.executor.load_pgn(text):
            return False
        self.commit()
        return True

    def import_fen(self, fen: str) -> bool:
        fen = " ".join((fen or "").split())
        if not fen or not self.executor.load_fen(fen):
            return False
        self.commit()
        return True

    @property
    def last_move(self) -> tuple[str, str] | None:
        return compute_last_move(self.full_line, self.view_ply)

    def fen(self) -> str:
        return self.executor.fen()

    def snapshot(self) -> dict:
        """Read-model for the renderer."""
        return {
            "fen": self.executor.fen(),
            "dests": self.executor.legal_destinations(),
            "last_move": self.last_move,
            "view_ply": self.view_ply,
            "full_line": [m.san for m in self.full_line],
            "pgn": self.full_pgn,
        }
