from __future__ import annotations

import random
from typing import Iterable, Sequence

from app.domain.entities import Difficulty, Move, MoveSource
from app.services.line_service import (
    WIN_THRESHOLD,
    WINNING_COMBINATIONS,
    has_won,
    is_complete_board,
)

# weight by how many of the other four cells of a line are already called
LINE_WEIGHTS = {3: 4, 2: 2, 1: 1}


def available_numbers(pool: Iterable[int], called: Iterable[int]) -> list[int]:
    called_set = set(called or ())
    return [n for n in pool if n not in called_set]


def completing_number(
    board: Sequence | None, called_set: set[int], available_set: set[int]
) -> int | None:
    """First number that would finish a line holding exactly 4 called cells."""
    if not is_complete_board(board):
        return None
    for combo in WINNING_COMBINATIONS:
        values = [board[i] for i in combo]
        missing = [v for v in values if v not in called_set]
        if len(missing) == 1 and missing[0] in available_set:
            return missing[0]
    return None


def score_numbers(
    board: Sequence, called_set: set[int], available: list[int]
) -> dict[int, int]:
    position = {v: i for i, v in enumerate(board)}
    scores: dict[int, int] = {}
    for n in available:
        idx = position.get(n)
        score = 0
        if idx is not None:
            for combo in WINNING_COMBINATIONS:
                if idx not in combo:
                    continue
                others = sum(
                    1 for i in combo if i != idx and board[i] in called_set
                )
                score += LINE_WEIGHTS.get(others, 0)
        scores[n] = score
    return scores


def best_scored_number(
    board: Sequence | None, called_set: set[int], available: list[int]
) -> int | None:
    # ties go to the earliest number in pool order
    if not is_complete_board(board):
        return None
    scores = score_numbers(board, called_set, available)
    best, best_score = None, 0
    for n in available:
        if scores[n] > best_score:
            best, best_score = n, scores[n]
    return best


def decide_bot_move(
    bot_board: Sequence,
    opponent_board: Sequence | None,
    called: Iterable[int],
    pool: Iterable[int],
    difficulty: Difficulty | str = Difficulty.normal,
    *,
    win_lines: int = WIN_THRESHOLD,
    rng: random.Random | None = None,
) -> Move:
    called_set = set(called or ())
    difficulty = Difficulty(difficulty)

    if has_won(bot_board, called_set, win_lines):
        return Move(number=None, declare_win=True, source=MoveSource.engine)

    available = available_numbers(pool, called_set)
    if not available:
        return Move(number=None, declare_win=False, source=MoveSource.engine)
    available_set = set(available)

    n = completing_number(bot_board, called_set, available_set)
    if n is not None:
        return Move(number=n, source=MoveSource.engine)

    if difficulty is Difficulty.hard and opponent_board is not None:
        n = completing_number(opponent_board, called_set, available_set)
        if n is not None:
            return Move(number=n, source=MoveSource.engine)

    best = best_scored_number(bot_board, called_set, available)
    if best is not None:
        return Move(number=best, source=MoveSource.engine)

    return Move(number=(rng or random).choice(available), source=MoveSource.engine)


def suggest_number(
    board: Sequence | None, called: Iterable[int], pool: Iterable[int]
) -> int | None:
    """Best call for the owner of ``board``; no randomness, no blocking."""
    called_set = set(called or ())
    available = available_numbers(pool, called_set)
    if not available or not is_complete_board(board):
        return None
    n = completing_number(board, called_set, set(available))
    if n is not None:
        return n
    return best_scored_number(board, called_set, available)
