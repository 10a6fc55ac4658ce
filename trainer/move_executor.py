"""
python-chess backed move validator/executor.

The core never checks chess rules itself; this adapter is the authority on
legality. It plays single moves, replays a prefix of a move list, reports the
move history and exports the line as PGN movetext.
"""

import io

import chess
import chess.pgn

from models import AppliedMove, Move


def _to_chess_move(move: Move) -> chess.Move | None:
    try:
        return chess.Move(
            chess.parse_square(move.from_square),
            chess.parse_square(move.to_square),
            promotion=chess.Piece.from_symbol(move.promotion).piece_type if move.promotion else None,
        )
    except (ValueError, TypeError):
        return None


def _applied(board: chess.Board, cm: chess.Move) -> AppliedMove:
    """Describe cm as an AppliedMove. Must be called before cm is pushed."""
    return AppliedMove(
        from_square=chess.square_name(cm.from_square),
        to_square=chess.square_name(cm.to_square),
        promotion=chess.piece_symbol(cm.promotion) if cm.promotion else None,
        san=board.san(cm),
    )


class ChessMoveExecutor:
    def __init__(self, board: chess.Board | None = None):
        self.board = board if board is not None else chess.Board()
        self.start_fen = self.board.root().fen()

    def reset(self) -> None:
        self.board = chess.Board(self.start_fen)

    def make_move(self, move: Move) -> AppliedMove | None:
        """Play move if legal. Returns None for illegal or malformed moves."""
        cm = _to_chess_move(move)
        if cm is None or not self.board.is_legal(cm):
            return None
        applied = _applied(self.board, cm)
        self.board.push(cm)
        return applied

    def set_to_ply(self, line: list, ply: int) -> None:
        """
        Replay the first ply moves of line from the start position.
        Raises ValueError (board left at the start) if a stored move is illegal.
        """
        self.reset()
        for m in line[:max(0, ply)]:
            if self.make_move(Move(m.from_square, m.to_square, m.promotion)) is None:
                self.reset()
                raise ValueError(f"illegal stored move {m.from_square}{m.to_square}")

    def history(self) -> list[AppliedMove]:
        replay = self.board.root()
        out = []
        for cm in self.board.move_stack:
            out.append(_applied(replay, cm))
            replay.push(cm)
        return out

    def fen(self) -> str:
        return self.board.fen()

    def pgn(self) -> str:
        """Movetext of the whole line, without headers."""
        game = chess.pgn.Game.from_board(self.board)
        exporter = chess.pgn.StringExporter(headers=False, variations=False, comments=False)
        return game.accept(exporter)

    def legal_destinations(self) -> dict[str, list[str]]:
        dests: dict[str, list[str]] = {}
        for cm in self.board.legal_moves:
            dests.setdefault(chess.square_name(cm.from_square), []).append(chess.square_name(cm.to_square))
        return {sq: sorted(set(to)) for sq, to in dests.items()}

    def load_pgn(self, text: str) -> bool:
        """Replace the board with the PGN mainline. Leaves the board untouched on failure."""
        game = chess.pgn.read_game(io.StringIO(text))
        if game is None or game.errors:
            return False
        board = game.board()
        for cm in game.mainline_moves():
            board.push(cm)
        self.board = board
        self.start_fen = board.root().fen()
        return True

    def load_fen(self, fen: str) -> bool:
        try:
            board = chess.Board(fen)
        except ValueError:
            return False
        if not board.is_valid():
            return False
        self.board = board
        self.start_fen = board.fen()
        return True
