from __future__ import annotations

import logging
import time
from typing import Any, Callable

from app.database.store import CONFLICT_MESSAGE, GameStore, StoreUnavailableError
from app.domain.entities import GameStatus
from app.services.game_service import GameService
from app.workers.scheduler import cancel, get_scheduler, run_later
from config import Settings


logger = logging.getLogger(__name__)

_STORE: GameStore | None = None
_SVC: GameService | None = None

# (game code, timer kind) -> turn generation / setup start the job was armed for
_armed: dict[tuple[str, str], Any] = {}

TURN = "turn"
BOT = "bot"
SETUP = "setup"


def set_store(store: GameStore, svc: GameService | None = None) -> None:
    global _STORE, _SVC
    _STORE = store
    _SVC = svc or GameService()


def _store() -> GameStore:
    if _STORE is None:
        raise RuntimeError("Timers store not set. Call app.workers.timers.set_store(store).")
    return _STORE


def _svc() -> GameService:
    global _SVC
    if _SVC is None:
        _SVC = GameService()
    return _SVC


def _job_id(kind: str, code: str) -> str:
    return f"bingo_{kind}:{code}"


def armed_for(code: str, kind: str) -> Any:
    return _armed.get((code, kind))


def _arm(
    code: str,
    kind: str,
    marker: Any,
    seconds: float,
    func: Callable[..., None],
    args: list[Any],
) -> None:
    job_id = _job_id(kind, code)
    if _armed.get((code, kind)) == marker and get_scheduler().get_job(job_id):
        return
    _armed[(code, kind)] = marker
    run_later(job_id, seconds, func, args)
    logger.debug("game %s: %s timer armed for %s in %.1fs", code, kind, marker, seconds)


def disarm(code: str, kind: str) -> None:
    _armed.pop((code, kind), None)
    cancel(_job_id(kind, code))


def disarm_all(code: str) -> None:
    for kind in (TURN, BOT, SETUP):
        disarm(code, kind)


# -------------------- registry --------------------


def sync_timers(state: dict, now: float | None = None) -> None:
    """Store listener: make the armed timers match the game snapshot."""
    code = state.get("code")
    if not code:
        return
    now = time.time() if now is None else now
    status = str(state.get("status") or "")
    cfg = state.get("config") or {}

    if status not in (GameStatus.setup.value, GameStatus.playing.value):
        disarm_all(code)
        return

    if status == GameStatus.setup.value and int(cfg.get("setup_seconds") or 0) > 0:
        started = state.get("setup_started_at") or now
        delay = float(started) + int(cfg["setup_seconds"]) - now
        _arm(code, SETUP, started, delay, _setup_timeout_job, [code, started])
    else:
        disarm(code, SETUP)

    if status != GameStatus.playing.value:
        disarm(code, TURN)
        disarm(code, BOT)
        return

    svc = _svc()
    gen = int(state.get("turn_gen") or 0)
    uid = svc.current_player_id(state)

    delays: list[float] = []
    if int(cfg.get("turn_seconds") or 0) > 0:
        started = state.get("turn_started_at") or now
        delays.append(float(started) + int(cfg["turn_seconds"]) - now)
    left = svc.remaining_clock(state, uid, now) if uid else None
    if left is not None:
        delays.append(left)

    if delays:
        _arm(code, TURN, gen, min(delays), _turn_timeout_job, [code, gen])
    else:
        disarm(code, TURN)

    if uid and svc.is_bot(state, uid):
        _arm(code, BOT, gen, Settings.BOT_THINK_SECONDS, _bot_move_job, [code, gen])
    else:
        disarm(code, BOT)


def _resync(code: str, kind: str) -> None:
    # the job lost its write to conflicts; re-arm from the latest snapshot
    _armed.pop((code, kind), None)
    try:
        state = _store().snapshot(code)
    except StoreUnavailableError:
        logger.warning("game %s: store unavailable, %s timer dropped", code, kind)
        return
    if state:
        sync_timers(state)


def _run_job(code: str, kind: str, action: Callable[[dict], tuple[bool, str]]) -> None:
    try:
        ok, msg, _ = _store().update(code, action)
    except StoreUnavailableError:
        logger.warning("game %s: store unavailable, %s timer dropped", code, kind)
        return

    if ok:
        logger.info("game %s: %s timer fired -> %s", code, kind, msg)
    elif msg == CONFLICT_MESSAGE:
        _resync(code, kind)
    else:
        logger.debug("game %s: stale %s timer discarded (%s)", code, kind, msg)


# -------------------- jobs --------------------


def _turn_timeout_job(code: str, gen: int) -> None:
    _run_job(code, TURN, lambda st: _svc().turn_expired(st, gen))


def _bot_move_job(code: str, gen: int) -> None:
    _run_job(code, BOT, lambda st: _svc().bot_turn(st, gen))


def _setup_timeout_job(code: str, started_at: float) -> None:
    _run_job(code, SETUP, lambda st: _svc().expire_setup(st, started_at))
