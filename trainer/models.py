"""Data models for the opening trainer: moves, tree nodes, openings and app state."""

from dataclasses import dataclass, field
from typing import Literal

Color = Literal["white", "black"]

SCHEMA_VERSION = 1
DEFAULT_STORAGE_KEY = "trainer.state.v1"
DEFAULT_STUDIES_KEY = "trainer.studies.v1"
DEFAULT_ACTIVE_STUDY_KEY = "trainer.activeStudyId"
DEFAULT_LEGACY_PGN_KEY = "trainer.pgn"

PROMOTION_PIECES = ("q", "n", "r", "b")


@dataclass(frozen=True)
class Move:
    """A move as the user played it: origin, destination, optional promotion piece."""

    from_square: str
    to_square: str
    promotion: str | None = None

    def __post_init__(self):
        if self.promotion is not None and self.promotion not in PROMOTION_PIECES:
            raise ValueError(f"invalid promotion piece {self.promotion!r}")

    @classmethod
    def from_dict(cls, data: dict) -> "Move":
        if not isinstance(data, dict):
            raise ValueError(f"move must be an object, got {data!r}")
        try:
            return cls(
                from_square=data["from"],
                to_square=data["to"],
                promotion=data.get("promotion"),
            )
        except KeyError as e:
            raise ValueError(f"move is missing field {e}") from e

    @classmethod
    def from_uci(cls, uci: str) -> "Move":
        return cls(uci[0:2], uci[2:4], uci[4:5] or None)

    def to_dict(self) -> dict:
        out = {"from": self.from_square, "to": self.to_square}
        if self.promotion is not None:
            out["promotion"] = self.promotion
        return out

    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"


@dataclass(frozen=True)
class AppliedMove:
    """Move record returned by the move executor after a legal move was played."""

    from_square: str
    to_square: str
    promotion: str | None = None
    san: str = ""

    @property
    def move(self) -> Move:
        return Move(self.from_square, self.to_square, self.promotion)


@dataclass(eq=False)
class TreeNode:
    """Position in the repertoire tree. The root carries no move."""

    move: Move | None = None
    children: list["TreeNode"] = field(default_factory=list)


@dataclass
class SessionResult:
    ok: bool
    reason: str | None = None
    node: TreeNode | None = None
    created: bool | None = None


@dataclass
class Opening:
    """Named repertoire: a move tree plus the side the user trains."""

    id: str
    name: str
    train_as: Color
    root: TreeNode = field(default_factory=TreeNode)
    last_path: list[Move] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0


@dataclass
class Study:
    """Legacy single-line record: the whole line is kept as PGN text."""

    id: str
    name: str = "New opening"
    color: Color = "white"
    pgn: str = ""
    created_at: int = 0
    updated_at: int = 0


@dataclass
class AppState:
    schema_version: int = SCHEMA_VERSION
    openings: list[Opening] = field(default_factory=list)
    active_opening_id: str | None = None


@dataclass(frozen=True)
class RepositoryConfig:
    """Storage keys and schema version used by one repository instance."""

    storage_key: str = DEFAULT_STORAGE_KEY
    schema_version: int = SCHEMA_VERSION
    studies_key: str = DEFAULT_STUDIES_KEY
    active_study_key: str = DEFAULT_ACTIVE_STUDY_KEY
    legacy_pgn_key: str = DEFAULT_LEGACY_PGN_KEY
