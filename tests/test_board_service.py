import random

import pytest

from app.services.board_service import BoardService

POOL = list(range(1, 76))


def test_build_board_draws_distinct_numbers_from_pool():
    board = BoardService().build_board(POOL, rng=random.Random(2))
    assert len(board) == 25
    assert len(set(board)) == 25
    assert set(board) <= set(POOL)


def test_build_board_rejects_small_pool():
    with pytest.raises(ValueError):
        BoardService().build_board(list(range(1, 10)))


def test_place_number_fills_empty_cell():
    board = BoardService.empty_board()
    board = BoardService.place_number(board, 3, 42)
    assert board[3] == 42
    assert board.count(None) == 24


def test_place_number_swaps_when_already_placed():
    board = BoardService.empty_board()
    board = BoardService.place_number(board, 0, 7)
    board = BoardService.place_number(board, 1, 9)
    board = BoardService.place_number(board, 1, 7)
    assert board[1] == 7
    assert board[0] == 9


def test_place_number_moves_into_empty_cell():
    board = BoardService.place_number(BoardService.empty_board(), 0, 7)
    board = BoardService.place_number(board, 5, 7)
    assert board[5] == 7
    assert board[0] is None


def test_validate_board():
    ok, _ = BoardService.validate_board(list(range(1, 26)), POOL)
    assert ok

    ok, msg = BoardService.validate_board(list(range(1, 25)) + [None], POOL)
    assert not ok and "Fill" in msg

    ok, msg = BoardService.validate_board(list(range(1, 25)) + [1], POOL)
    assert not ok and "unique" in msg

    ok, msg = BoardService.validate_board(list(range(60, 85)), POOL)
    assert not ok and "between 1 and 75" in msg

    ok, _ = BoardService.validate_board(list(range(1, 20)), POOL)
    assert not ok
