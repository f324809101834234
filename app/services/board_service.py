from __future__ import annotations

import random
from typing import Sequence

from app.services.line_service import BOARD_CELLS, is_complete_board


class BoardService:
    def build_board(
        self, pool: Sequence[int], rng: random.Random | None = None
    ) -> list[int]:
        if len(pool) < BOARD_CELLS:
            raise ValueError(f"Pool needs at least {BOARD_CELLS} numbers")
        return (rng or random).sample(list(pool), BOARD_CELLS)

    @staticmethod
    def empty_board() -> list[int | None]:
        return [None] * BOARD_CELLS

    @staticmethod
    def place_number(
        board: Sequence[int | None], index: int, number: int
    ) -> list[int | None]:
        """Put number at index; if it already sits elsewhere the two cells swap."""
        new_board = list(board)
        if not 0 <= index < len(new_board):
            return new_board
        try:
            existing = new_board.index(number)
        except ValueError:
            existing = None

        displaced = new_board[index]
        new_board[index] = number
        if existing is not None and existing != index:
            new_board[existing] = displaced
        return new_board

    @staticmethod
    def validate_board(
        board: Sequence | None, pool: Sequence[int]
    ) -> tuple[bool, str]:
        if not isinstance(board, (list, tuple)) or len(board) != BOARD_CELLS:
            return False, f"The board needs exactly {BOARD_CELLS} cells."
        if any(v is None for v in board):
            return False, "Fill every cell before confirming."
        if not is_complete_board(board):
            return False, "Every number on the board must be unique."
        pool_set = set(pool)
        if any(v not in pool_set for v in board):
            return False, f"Numbers must be between {min(pool)} and {max(pool)}."
        return True, "OK"
