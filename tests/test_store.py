import pytest
from sqlalchemy.exc import OperationalError

from app.database import store as store_module
from app.database.store import (
    CONFLICT_MESSAGE,
    NOT_FOUND_MESSAGE,
    GameStore,
    StoreUnavailableError,
)


def _add(svc, number):
    def mutate(state):
        if svc.append_unique(state["called"], number):
            return True, "OK"
        return False, "That number has already been called."

    return mutate


def test_create_and_snapshot(store, playing):
    created = store.create("g1", playing)
    assert created == playing
    assert store.snapshot("g1") == playing
    assert store.snapshot("missing") is None


def test_create_rejects_duplicate_code(store, playing):
    assert store.create("g1", playing) is not None
    assert store.create("g1", playing) is None


def test_update_writes_and_returns_fresh_copy(svc, store, playing):
    store.create("g1", playing)
    ok, msg, state = store.update("g1", lambda st: svc.call_number(st, "A", 60))
    assert (ok, msg) == (True, "OK")
    assert state["called"] == [60]
    assert store.snapshot("g1")["turn"] == "B"


def test_rejected_action_writes_nothing(svc, store, playing):
    store.create("g1", playing)
    ok, msg, _ = store.update("g1", lambda st: svc.call_number(st, "B", 60))
    assert not ok and "not your turn" in msg
    assert store.snapshot("g1") == playing


def test_update_missing_game(store):
    assert store.update("nope", lambda st: (True, "OK")) == (False, NOT_FOUND_MESSAGE, None)


def test_concurrent_appends_of_same_number_collapse(svc, store, playing):
    store.create("g1", playing)
    seen = []

    def racing(state):
        seen.append(list(state["called"]))
        if len(seen) == 1:
            # another observer lands the same number between our read and write
            store.update("g1", _add(svc, 7))
        return _add(svc, 7)(state)

    ok, msg, _ = store.update("g1", racing)
    assert not ok and "already been called" in msg
    assert seen == [[], [7]]
    assert store.snapshot("g1")["called"] == [7]


def test_retries_run_out(svc, store, playing):
    store.create("g1", playing)
    store.retries = 2
    counter = iter(range(100, 200))

    def always_beaten(state):
        store.update("g1", _add(svc, next(counter)))
        state["called"].append(1)
        return True, "OK"

    assert store.update("g1", always_beaten) == (False, CONFLICT_MESSAGE, None)
    assert 1 not in store.snapshot("g1")["called"]


def test_subscribers_get_copies(svc, store, playing):
    received, everything = [], []
    unsubscribe = store.subscribe("g1", received.append)
    store.watch_all(everything.append)

    store.create("g1", playing)
    store.update("g1", lambda st: svc.call_number(st, "A", 60))
    assert [s["called"] for s in received] == [[], [60]]
    assert len(everything) == 2

    received[-1]["called"].append(99)
    assert store.snapshot("g1")["called"] == [60]

    unsubscribe()
    store.update("g1", lambda st: svc.call_number(st, "B", 61))
    assert len(received) == 2
    assert len(everything) == 3


def test_failing_subscriber_does_not_break_write(svc, store, playing):
    def broken(state):
        raise RuntimeError("boom")

    received = []
    store.subscribe("g1", broken)
    store.subscribe("g1", received.append)
    store.create("g1", playing)

    ok, _, _ = store.update("g1", lambda st: svc.call_number(st, "A", 60))
    assert ok
    assert len(received) == 2


def test_store_unavailable(monkeypatch, store):
    def down():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(store_module, "get_session", down)
    with pytest.raises(StoreUnavailableError):
        store.update("g1", lambda st: (True, "OK"))
    with pytest.raises(StoreUnavailableError):
        store.snapshot("g1")


def test_retries_default_from_settings():
    assert GameStore().retries == 3


def test_snapshots_by_status(svc, store, playing):
    store.create("g1", playing)
    store.create("g2", svc.new_game_state("g2"))
    finished = dict(playing, code="g3", status="finished")
    store.create("g3", finished)

    assert [s["code"] for s in store.snapshots_by_status("playing")] == ["g1"]
    codes = [s["code"] for s in store.snapshots_by_status("waiting", "playing")]
    assert codes == ["g1", "g2"]
    assert store.snapshots_by_status("setup") == []
