import time

import pytest

from app.database.store import GameStore, StoreUnavailableError
from app.handlers.base import CONNECTION_MESSAGE, SIGN_IN_MESSAGE
from app.runtime import BingoRuntime
from app.services.game_service import NOT_A_BINGO
from app.workers import timers
from app.workers.scheduler import get_scheduler
from conftest import start_two_player_game


NO_CLOCKS = {"turn_seconds": 0, "player_seconds": 0, "setup_seconds": 0}


@pytest.fixture()
def runtime(svc):
    rt = BingoRuntime(svc)
    yield rt
    rt.stop()


def _seat_two(runtime, **config):
    ok, code = runtime.lobby.create_game("A", "Alice", **{**NO_CLOCKS, **config})
    assert ok
    ok, msg = runtime.lobby.join_game(code, "B", "Bob")
    assert ok and "Set up your board" in msg
    return code


def _other(uid):
    return "B" if uid == "A" else "A"


def test_create_game_seats_host(runtime):
    ok, code = runtime.lobby.create_game("A", "Alice", **NO_CLOCKS)
    assert ok
    state = runtime.store.snapshot(code)
    assert state["players"] == ["A"]
    assert state["host"] == "A"
    assert state["status"] == "waiting"


def test_create_game_with_bot_goes_to_setup(runtime):
    ok, code = runtime.lobby.create_game("A", "Alice", bot_enabled=True, **NO_CLOCKS)
    assert ok
    state = runtime.store.snapshot(code)
    assert state["status"] == "setup"
    bot_id = state["players"][0]
    assert state["ready"][bot_id] is True


def test_create_game_refusals(runtime):
    assert runtime.lobby.create_game(None) == (False, SIGN_IN_MESSAGE)
    assert runtime.lobby.create_game("A", variant="x") == (False, "Unknown variant: x")


def test_actions_need_a_signed_in_player(runtime):
    code = _seat_two(runtime)
    assert runtime.play.call_number(code, None, 5) == (False, SIGN_IN_MESSAGE)
    assert runtime.boards.confirm_board(code, "", list(range(1, 26))) == (False, SIGN_IN_MESSAGE)


def test_full_round(runtime):
    code = _seat_two(runtime)

    ok, _, board = runtime.boards.randomize_board(code)
    assert ok and len(set(board)) == 25
    ok, msg = runtime.boards.confirm_board(code, "A", board)
    assert ok and "Waiting for the other players" in msg
    ok, msg = runtime.boards.confirm_board(code, "B", list(range(1, 26)))
    assert ok and "Let's play" in msg

    view = runtime.play.view(code, "A")
    assert view["status"] == "playing"
    holder = view["turn"]
    other = _other(holder)

    ok, msg = runtime.play.call_number(code, other, 60)
    assert not ok and "not your turn" in msg

    ok, msg = runtime.play.call_number(code, holder, 60)
    assert ok
    assert msg.startswith("Waiting for")

    ok, msg = runtime.play.call_number(code, other, 60)
    assert not ok and "already been called" in msg

    assert runtime.play.declare_bingo(code, other) == (False, NOT_A_BINGO)

    view = runtime.play.view(code, other)
    assert view["called"] == [60]
    assert view["my_turn"] is True
    assert view["turn_text"] == "Your turn: call a number."
    assert view["win_lines"] == 5
    assert view["clocks"] == {"A": "--:--", "B": "--:--"}
    assert view["result"] == ""

    assert runtime.play.view("missing", "A") is None


def test_win_then_reset(runtime):
    code = _seat_two(runtime, variant="classic")
    runtime.boards.confirm_board(code, "A", list(range(1, 26)))
    runtime.boards.confirm_board(code, "B", list(range(25, 0, -1)))

    holder = runtime.play.view(code, "A")["turn"]
    other = _other(holder)
    for uid, n in ((holder, 1), (other, 2), (holder, 3), (other, 4)):
        ok, _ = runtime.play.call_number(code, uid, n)
        assert ok

    assert runtime.play.call_number(code, holder, 5) == (True, "BINGO! You win!")
    view = runtime.play.view(code, other)
    assert view["status"] == "finished"
    assert view["result"].startswith("BINGO!")

    ok, msg = runtime.play.call_number(code, other, 6)
    assert not ok

    assert runtime.play.reset_game(code, other) == (True, "New round! Set up your board.")
    state = runtime.store.snapshot(code)
    assert state["status"] == "setup"
    assert state["called"] == []
    assert state["winner"] is None


def test_store_changes_drive_timers(runtime):
    code = _seat_two(runtime, turn_seconds=30)
    runtime.boards.confirm_board(code, "A", list(range(1, 26)))
    runtime.boards.confirm_board(code, "B", list(range(26, 51)))

    state = runtime.store.snapshot(code)
    assert timers.armed_for(code, timers.TURN) == state["turn_gen"]

    runtime.play.call_number(code, state["turn"], 60)
    assert timers.armed_for(code, timers.TURN) == state["turn_gen"] + 1


def test_connection_problem_is_reported(runtime, monkeypatch):
    code = _seat_two(runtime)

    def down(*args, **kwargs):
        raise StoreUnavailableError("database is locked")

    monkeypatch.setattr(runtime.store, "update", down)
    monkeypatch.setattr(runtime.store, "snapshot", down)
    monkeypatch.setattr(runtime.store, "create", down)

    assert runtime.play.call_number(code, "A", 5) == (False, CONNECTION_MESSAGE)
    assert runtime.boards.randomize_board(code) == (False, CONNECTION_MESSAGE, None)
    assert runtime.play.view(code, "A") is None
    assert runtime.lobby.create_game("C") == (False, CONNECTION_MESSAGE)


def test_tip_for_player(runtime):
    code = _seat_two(runtime, variant="classic")
    runtime.boards.confirm_board(code, "A", list(range(1, 26)))
    runtime.boards.confirm_board(code, "B", list(range(25, 0, -1)))

    holder = runtime.play.view(code, "A")["turn"]
    other = _other(holder)
    ok, _, number = runtime.play.tip(code, holder)
    assert not ok and number is None

    for uid, n in ((holder, 1), (other, 2), (holder, 3), (other, 4)):
        runtime.play.call_number(code, uid, n)

    assert runtime.play.tip(code, holder) == (True, "Call 5 to complete a line.", 5)
    assert runtime.play.tip(code, None) == (False, SIGN_IN_MESSAGE, None)
    assert runtime.play.tip("missing", "A") == (False, "Game not found.", None)


def test_start_rearms_timers_for_active_games(svc, runtime):
    # written by an earlier process, so no listener saw them
    earlier = GameStore()
    live = start_two_player_game(svc, code="live", now=time.time(), turn_seconds=30)
    earlier.create("live", live)
    done = start_two_player_game(svc, code="done", now=time.time(), turn_seconds=30)
    done["status"] = "finished"
    earlier.create("done", done)
    assert timers.armed_for("live", timers.TURN) is None

    runtime.start()
    assert timers.armed_for("live", timers.TURN) == live["turn_gen"]
    job = get_scheduler().get_job("bingo_turn:live")
    assert job is not None
    assert job.misfire_grace_time is None
    assert timers.armed_for("done", timers.TURN) is None
