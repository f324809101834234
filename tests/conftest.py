import os
import random
import tempfile

# the engine is bound at import time, so point it at a scratch database first
_DB_DIR = tempfile.mkdtemp(prefix="bingo-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"

import pytest

from app.database.store import GameStore
from app.services.game_service import GameService
from app.utils.db_manager import drop_db, init_db
from app.workers import timers
from app.workers.scheduler import shutdown_scheduler


BOARD_A = list(range(1, 26))
BOARD_B = list(range(26, 51))


@pytest.fixture(autouse=True)
def db():
    init_db()
    yield
    drop_db()


@pytest.fixture(autouse=True)
def clean_timers():
    yield
    shutdown_scheduler()
    timers._armed.clear()
    timers._STORE = None
    timers._SVC = None


@pytest.fixture()
def svc():
    return GameService(rng=random.Random(7))


@pytest.fixture()
def store():
    return GameStore()


def start_two_player_game(
    svc, code="g1", now=100.0, turn="A", board_a=None, board_b=None, **config
):
    """A and B seated with fixed boards, playing, A to move."""
    config.setdefault("turn_seconds", 0)
    config.setdefault("player_seconds", 0)
    config.setdefault("setup_seconds", 0)
    state = svc.new_game_state(code, host_id="A", **config)
    svc.join(state, "A", "Alice", now=now)
    svc.join(state, "B", "Bob", now=now)
    board_a = board_a or BOARD_A
    if board_b is None:
        board_b = BOARD_A[::-1] if config.get("variant") == "classic" else BOARD_B
    svc.set_board(state, "A", board_a, now=now)
    svc.set_board(state, "B", board_b, now=now)
    state["turn"] = turn
    return state


@pytest.fixture()
def make_game(svc):
    def _make(**kwargs):
        return start_two_player_game(svc, **kwargs)

    return _make


@pytest.fixture()
def playing(make_game):
    return make_game()
