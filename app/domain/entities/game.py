from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


DRAW = "DRAW"


class GameStatus(Enum):
    waiting = "waiting"
    setup = "setup"
    playing = "playing"
    finished = "finished"


class Difficulty(Enum):
    normal = "normal"
    hard = "hard"


class MoveSource(Enum):
    human = "human"
    engine = "engine"
    timeout = "timeout"


class FinishReason(Enum):
    bingo = "bingo"
    draw = "draw"
    time_forfeit = "time_forfeit"


@dataclass(frozen=True, slots=True)
class Variant:
    name: str
    pool_size: int
    win_lines: int

    def pool(self) -> list[int]:
        return list(range(1, self.pool_size + 1))


@dataclass(frozen=True, slots=True)
class Move:
    """A turn action, either typed in by a player or computed by the engine."""

    number: int | None = None
    declare_win: bool = False
    source: MoveSource = MoveSource.human
