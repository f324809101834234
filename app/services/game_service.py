from __future__ import annotations

import logging
import random
import time
from typing import Any

from app.domain.entities import (
    DRAW,
    Difficulty,
    FinishReason,
    GameStatus,
    Move,
    MoveSource,
    Variant,
)
from app.services.board_service import BoardService
from app.services.bot_service import (
    available_numbers,
    completing_number,
    decide_bot_move,
    suggest_number,
)
from app.services.line_service import count_completed_lines, has_won
from app.utils.identity import new_player_id
from config import Settings


logger = logging.getLogger(__name__)

NOT_A_BINGO = "Not a Bingo! You don't have a winning pattern yet. Keep playing!"


class GameService:
    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self.boards = BoardService()

    # -------------------- config --------------------

    @staticmethod
    def build_config(
        *,
        max_players: int | None = None,
        bot_enabled: bool = False,
        bot_difficulty: str | None = None,
        variant: str | None = None,
        turn_seconds: int | None = None,
        player_seconds: int | None = None,
        setup_seconds: int | None = None,
        host_controlled: bool = False,
    ) -> dict[str, Any]:
        s = Settings()
        variant = variant or s.VARIANT
        if variant not in s.variants:
            raise ValueError(f"Unknown variant: {variant}")
        max_players = int(max_players if max_players is not None else s.MAX_PLAYERS)
        if max_players < 2:
            raise ValueError("A game needs at least 2 seats")

        return {
            "max_players": max_players,
            "bot_enabled": bool(bot_enabled),
            "bot_difficulty": Difficulty(bot_difficulty or s.BOT_DIFFICULTY).value,
            "variant": variant,
            "pool_size": int(s.variants[variant]["pool_size"]),
            "win_lines": int(s.variants[variant]["win_lines"]),
            "turn_seconds": int(turn_seconds if turn_seconds is not None else s.TURN_SECONDS),
            "player_seconds": int(
                player_seconds if player_seconds is not None else s.PLAYER_SECONDS
            ),
            "setup_seconds": int(
                setup_seconds if setup_seconds is not None else s.SETUP_SECONDS
            ),
            "host_controlled": bool(host_controlled),
        }

    def new_game_state(
        self, code: str, host_id: str | None = None, **config: Any
    ) -> dict[str, Any]:
        state = {
            "code": code,
            "status": GameStatus.waiting.value,
            "host": host_id,
            "players": [],
            "player_meta": {},
            "boards": {},
            "ready": {},
            "clocks": {},
            "called": [],
            "turn": None,
            "turn_gen": 0,
            "turn_started_at": None,
            "setup_started_at": None,
            "winner": None,
            "finish_reason": None,
            "last_call": {},
            "config": self.build_config(**config),
        }
        if state["config"]["bot_enabled"]:
            self.add_bot(state)
        return state

    # -------------------- helpers --------------------

    @staticmethod
    def now_ts() -> float:
        return time.time()

    @staticmethod
    def status(state: dict) -> GameStatus:
        return GameStatus(state.get("status") or GameStatus.waiting.value)

    @staticmethod
    def variant(state: dict) -> Variant:
        cfg = state.get("config") or {}
        return Variant(
            name=str(cfg.get("variant") or "standard"),
            pool_size=int(cfg.get("pool_size") or 75),
            win_lines=int(cfg.get("win_lines") or 5),
        )

    @classmethod
    def pool(cls, state: dict) -> list[int]:
        return cls.variant(state).pool()

    @staticmethod
    def current_player_id(state: dict) -> str | None:
        return state.get("turn")

    @staticmethod
    def is_bot(state: dict, uid: str) -> bool:
        meta = (state.get("player_meta") or {}).get(uid) or {}
        return bool(meta.get("is_bot"))

    @staticmethod
    def _next_player_id(state: dict, uid: str) -> str:
        players = state.get("players") or []
        if not players:
            raise ValueError("No players")
        try:
            idx = players.index(uid)
        except ValueError:
            return players[0]
        return players[(idx + 1) % len(players)]

    @classmethod
    def opponent_of(cls, state: dict, uid: str) -> str | None:
        """First other player in join order, humans before bots."""
        others = [p for p in state.get("players") or [] if p != uid]
        humans = [p for p in others if not cls.is_bot(state, p)]
        if humans:
            return humans[0]
        return others[0] if others else None

    @staticmethod
    def append_unique(called: list[int], number: int) -> bool:
        if number in called:
            return False
        called.append(number)
        return True

    @classmethod
    def remaining_clock(
        cls, state: dict, uid: str, now: float | None = None
    ) -> float | None:
        clocks = state.get("clocks") or {}
        if uid not in clocks:
            return None
        left = float(clocks[uid])
        started = state.get("turn_started_at")
        if (
            cls.status(state) is GameStatus.playing
            and state.get("turn") == uid
            and started is not None
        ):
            now = cls.now_ts() if now is None else now
            left -= max(0.0, now - float(started))
        return max(0.0, left)

    @classmethod
    def line_counts(cls, state: dict) -> dict[str, int]:
        called = state.get("called") or []
        boards = state.get("boards") or {}
        return {
            uid: count_completed_lines(boards.get(uid), called)
            for uid in state.get("players") or []
        }

    # -------------------- lobby --------------------

    def add_bot(self, state: dict, name: str | None = None) -> str:
        uid = new_player_id()
        state.setdefault("players", []).append(uid)
        state.setdefault("player_meta", {})[uid] = {
            "name": name or Settings.BOT_NAME,
            "is_bot": True,
        }
        state.setdefault("ready", {})[uid] = False
        return uid

    def join(
        self, state: dict, uid: str, name: str | None = None, now: float | None = None
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.waiting:
            return False, "The game has already started."

        players = state.get("players") or []
        if uid in players:
            return False, "You are already in this game."

        cfg = state.get("config") or {}
        max_players = int(cfg.get("max_players") or 2)
        if len(players) >= max_players:
            return False, "Game is full."

        players.append(uid)
        state["players"] = players
        state.setdefault("player_meta", {})[uid] = {
            "name": name or f"Player {len(players)}",
            "is_bot": False,
        }
        state.setdefault("ready", {})[uid] = False

        if not cfg.get("host_controlled") and len(players) == max_players:
            self._begin_setup(state, now)
            return True, "SETUP"
        return True, "OK"

    def start(
        self, state: dict, uid: str, now: float | None = None
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.waiting:
            return False, "The game has already started."
        if not state.get("host") or state.get("host") != uid:
            return False, "Only the host can start the game."
        if len(state.get("players") or []) < 2:
            return False, "Waiting for at least 2 players."

        self._begin_setup(state, now)
        return True, "SETUP"

    def _begin_setup(self, state: dict, now: float | None = None) -> None:
        now = self.now_ts() if now is None else now
        pool = self.pool(state)

        state["status"] = GameStatus.setup.value
        state["setup_started_at"] = now
        boards: dict[str, list] = {}
        ready: dict[str, bool] = {}
        for uid in state.get("players") or []:
            if self.is_bot(state, uid):
                boards[uid] = self.boards.build_board(pool, rng=self.rng)
                ready[uid] = True
            else:
                boards[uid] = []
                ready[uid] = False
        state["boards"] = boards
        state["ready"] = ready

    # -------------------- setup --------------------

    def set_board(
        self, state: dict, uid: str, board: list, now: float | None = None
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.setup:
            return False, "Boards can only be changed during setup."
        if uid not in (state.get("players") or []):
            return False, "You are not in this game."

        ok, msg = self.boards.validate_board(board, self.pool(state))
        if not ok:
            return False, msg

        state.setdefault("boards", {})[uid] = list(board)
        state.setdefault("ready", {})[uid] = True

        if self._maybe_start_playing(state, now):
            return True, "PLAYING"
        return True, "OK"

    def expire_setup(
        self, state: dict, started_at: float, now: float | None = None
    ) -> tuple[bool, str]:
        """Setup time ran out: unready players get a random board."""
        if self.status(state) is not GameStatus.setup:
            return False, "STALE"
        if state.get("setup_started_at") != started_at:
            return False, "STALE"

        pool = self.pool(state)
        ready = state.setdefault("ready", {})
        for uid in state.get("players") or []:
            if not ready.get(uid):
                state.setdefault("boards", {})[uid] = self.boards.build_board(
                    pool, rng=self.rng
                )
                ready[uid] = True

        if self._maybe_start_playing(state, now):
            return True, "PLAYING"
        return False, "Waiting for players."

    def _maybe_start_playing(self, state: dict, now: float | None = None) -> bool:
        players = state.get("players") or []
        ready = state.get("ready") or {}
        if len(players) < 2 or not all(ready.get(uid) for uid in players):
            return False

        now = self.now_ts() if now is None else now
        cfg = state.get("config") or {}
        seconds = int(cfg.get("player_seconds") or 0)

        state["status"] = GameStatus.playing.value
        state["turn"] = self.rng.choice(players)
        state["called"] = []
        state["winner"] = None
        state["finish_reason"] = None
        state["last_call"] = {}
        state["clocks"] = {uid: float(seconds) for uid in players} if seconds else {}
        state["turn_started_at"] = now
        state["turn_gen"] = int(state.get("turn_gen") or 0) + 1
        return True

    # -------------------- play --------------------

    def _advance_turn(self, state: dict, now: float) -> None:
        state["turn"] = self._next_player_id(state, state.get("turn"))
        state["turn_started_at"] = now
        state["turn_gen"] = int(state.get("turn_gen") or 0) + 1

    def _finish(self, state: dict, winner: str, reason: FinishReason) -> None:
        state["status"] = GameStatus.finished.value
        state["winner"] = winner
        state["finish_reason"] = reason.value
        state["turn_gen"] = int(state.get("turn_gen") or 0) + 1
        logger.info(
            "game %s finished: winner=%s reason=%s",
            state.get("code"),
            winner,
            reason.value,
        )

    def _charge_clock(self, state: dict, uid: str, now: float) -> bool:
        """Deduct the running turn from uid's clock; False once it is exhausted."""
        clocks = state.get("clocks") or {}
        if uid not in clocks:
            return True
        started = state.get("turn_started_at")
        elapsed = max(0.0, now - float(started)) if started is not None else 0.0
        clocks[uid] = max(0.0, float(clocks[uid]) - elapsed)
        state["clocks"] = clocks
        return clocks[uid] > 0

    def _forfeit(self, state: dict, uid: str) -> None:
        players = state.get("players") or []
        others = [p for p in players if p != uid]
        if len(others) == 1:
            winner = others[0]
        else:
            winner = self._next_player_id(state, uid)
        self._finish(state, winner, FinishReason.time_forfeit)

    def call_number(
        self,
        state: dict,
        uid: str,
        number: int,
        *,
        source: MoveSource = MoveSource.human,
        now: float | None = None,
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.playing:
            return False, "The game is not in progress."
        if uid not in (state.get("players") or []):
            return False, "You are not in this game."
        if self.current_player_id(state) != uid:
            return False, "It's not your turn."

        variant = self.variant(state)
        if not isinstance(number, int) or isinstance(number, bool):
            return False, "Pick a number to call."
        if not 1 <= number <= variant.pool_size:
            return False, f"Pick a number between 1 and {variant.pool_size}."

        called = state.get("called") or []
        if number in called:
            return False, "That number has already been called."

        now = self.now_ts() if now is None else now
        if not self._charge_clock(state, uid, now):
            self._forfeit(state, uid)
            return True, "TIME_FORFEIT"

        self.append_unique(called, number)
        state["called"] = called
        state["last_call"] = {
            "uid": uid,
            "number": number,
            "source": MoveSource(source).value,
            "ts": now,
        }

        board = (state.get("boards") or {}).get(uid)
        if has_won(board, called, variant.win_lines):
            self._finish(state, uid, FinishReason.bingo)
            return True, "WIN"

        if len(called) >= variant.pool_size:
            self._finish(state, DRAW, FinishReason.draw)
            return True, "DRAW"

        self._advance_turn(state, now)
        return True, "OK"

    def declare_bingo(self, state: dict, uid: str) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.playing:
            return False, "The game is not in progress."
        if uid not in (state.get("players") or []):
            return False, "You are not in this game."

        board = (state.get("boards") or {}).get(uid)
        if not has_won(board, state.get("called") or [], self.variant(state).win_lines):
            return False, NOT_A_BINGO

        self._finish(state, uid, FinishReason.bingo)
        return True, "WIN"

    def apply_move(
        self, state: dict, uid: str, move: Move, now: float | None = None
    ) -> tuple[bool, str]:
        if move.declare_win:
            return self.declare_bingo(state, uid)
        if move.number is None:
            return False, "No numbers left to call."
        return self.call_number(state, uid, move.number, source=move.source, now=now)

    def decide_for(self, state: dict, uid: str) -> Move:
        boards = state.get("boards") or {}
        cfg = state.get("config") or {}
        opponent = self.opponent_of(state, uid)
        variant = self.variant(state)
        return decide_bot_move(
            boards.get(uid),
            boards.get(opponent) if opponent else None,
            state.get("called") or [],
            variant.pool(),
            cfg.get("bot_difficulty") or Difficulty.normal.value,
            win_lines=variant.win_lines,
            rng=self.rng,
        )

    def tip_for(self, state: dict, uid: str) -> tuple[int | None, str]:
        """Suggested call for ``uid`` from their own board, with a short hint."""
        if self.status(state) is not GameStatus.playing:
            return None, "Tips are available once the game is in progress."
        if uid not in (state.get("players") or []):
            return None, "You are not in this game."

        board = (state.get("boards") or {}).get(uid)
        called = state.get("called") or []
        variant = self.variant(state)
        if has_won(board, called, variant.win_lines):
            return None, "You already have a winning pattern. Declare Bingo!"

        number = suggest_number(board, called, variant.pool())
        if number is None:
            return None, "No number helps your board right now. Any call will do."
        called_set = set(called)
        if completing_number(board, called_set, {number}) == number:
            return number, f"Call {number} to complete a line."
        return number, f"Call {number} to build toward your lines."

    def bot_turn(
        self, state: dict, gen: int, now: float | None = None
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.playing:
            return False, "STALE"
        if int(state.get("turn_gen") or 0) != int(gen):
            return False, "STALE"
        uid = self.current_player_id(state)
        if uid is None or not self.is_bot(state, uid):
            return False, "STALE"
        return self.apply_move(state, uid, self.decide_for(state, uid), now=now)

    def turn_expired(
        self, state: dict, gen: int, now: float | None = None
    ) -> tuple[bool, str]:
        """Turn limit or the holder's clock ran out."""
        if self.status(state) is not GameStatus.playing:
            return False, "STALE"
        if int(state.get("turn_gen") or 0) != int(gen):
            return False, "STALE"

        now = self.now_ts() if now is None else now
        uid = self.current_player_id(state)
        left = self.remaining_clock(state, uid, now)
        if left is not None and left <= 0:
            self._charge_clock(state, uid, now)
            self._forfeit(state, uid)
            return True, "TIME_FORFEIT"

        if self.is_bot(state, uid):
            decided = self.decide_for(state, uid)
            move = Move(
                number=decided.number,
                declare_win=decided.declare_win,
                source=MoveSource.timeout,
            )
        else:
            available = available_numbers(self.pool(state), state.get("called") or [])
            if not available:
                self._finish(state, DRAW, FinishReason.draw)
                return True, "DRAW"
            move = Move(number=self.rng.choice(available), source=MoveSource.timeout)

        return self.apply_move(state, uid, move, now=now)

    # -------------------- reset --------------------

    def reset(
        self, state: dict, uid: str | None = None, now: float | None = None
    ) -> tuple[bool, str]:
        if self.status(state) is not GameStatus.finished:
            return False, "The game is not over yet."
        if uid is not None and uid not in (state.get("players") or []):
            return False, "You are not in this game."

        state["called"] = []
        state["winner"] = None
        state["finish_reason"] = None
        state["turn"] = None
        state["turn_started_at"] = None
        state["last_call"] = {}
        state["clocks"] = {}
        state["turn_gen"] = int(state.get("turn_gen") or 0) + 1
        self._begin_setup(state, now)
        return True, "SETUP"
