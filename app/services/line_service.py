from __future__ import annotations

from typing import Iterable, Sequence

BOARD_CELLS = 25
WIN_THRESHOLD = 5

WINNING_COMBINATIONS: tuple[tuple[int, ...], ...] = (
    # rows
    (0, 1, 2, 3, 4),
    (5, 6, 7, 8, 9),
    (10, 11, 12, 13, 14),
    (15, 16, 17, 18, 19),
    (20, 21, 22, 23, 24),
    # columns
    (0, 5, 10, 15, 20),
    (1, 6, 11, 16, 21),
    (2, 7, 12, 17, 22),
    (3, 8, 13, 18, 23),
    (4, 9, 14, 19, 24),
    # diagonals
    (0, 6, 12, 18, 24),
    (4, 8, 12, 16, 20),
)


def _is_cell(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def is_complete_board(board: Sequence | None) -> bool:
    """25 set cells, all distinct integers."""
    if not isinstance(board, (list, tuple)) or len(board) != BOARD_CELLS:
        return False
    if not all(_is_cell(v) for v in board):
        return False
    return len(set(board)) == BOARD_CELLS


def completed_lines(
    board: Sequence | None, called: Iterable[int]
) -> list[tuple[int, ...]]:
    if not is_complete_board(board):
        return []
    called_set = set(called or ())
    return [
        combo
        for combo in WINNING_COMBINATIONS
        if all(board[i] in called_set for i in combo)
    ]


def count_completed_lines(board: Sequence | None, called: Iterable[int]) -> int:
    return len(completed_lines(board, called))


def has_won(
    board: Sequence | None, called: Iterable[int], threshold: int = WIN_THRESHOLD
) -> bool:
    return count_completed_lines(board, called) >= max(1, int(threshold))
