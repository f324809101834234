from .game import (
    DRAW,
    Difficulty,
    FinishReason,
    GameStatus,
    Move,
    MoveSource,
    Variant,
)
