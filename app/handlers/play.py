from __future__ import annotations

from typing import Any

from app.domain.entities import Move, MoveSource
from app.handlers.base import BaseHandler, SIGN_IN_MESSAGE
from app.utils.announce import format_time, result_line, turn_line


class PlayHandler(BaseHandler):
    def call_number(self, code: str, uid: str | None, number: int) -> tuple[bool, str]:
        return self.submit(code, uid, Move(number=number, source=MoveSource.human))

    def declare_bingo(self, code: str, uid: str | None) -> tuple[bool, str]:
        return self.submit(code, uid, Move(declare_win=True, source=MoveSource.human))

    def submit(self, code: str, uid: str | None, move: Move) -> tuple[bool, str]:
        ok, msg, state = self._act(
            code, uid, lambda st: self.svc.apply_move(st, uid, move)
        )
        if not ok or state is None:
            return False, msg
        if msg == "OK":
            return True, turn_line(state, uid)
        return True, result_line(state, uid)

    def reset_game(self, code: str, uid: str | None) -> tuple[bool, str]:
        ok, msg, _ = self._act(code, uid, lambda st: self.svc.reset(st, uid))
        if not ok:
            return False, msg
        return True, "New round! Set up your board."

    def tip(self, code: str, uid: str | None) -> tuple[bool, str, int | None]:
        if not uid:
            return False, SIGN_IN_MESSAGE, None
        state, msg = self._read(code)
        if state is None:
            return False, msg, None
        number, text = self.svc.tip_for(state, uid)
        return number is not None, text, number

    def view(self, code: str, uid: str | None) -> dict[str, Any] | None:
        """What a player's screen needs from the current snapshot."""
        state, _ = self._read(code)
        if state is None:
            return None

        players = state.get("players") or []
        lines = self.svc.line_counts(state)
        return {
            "status": state.get("status"),
            "called": list(state.get("called") or []),
            "turn": state.get("turn"),
            "my_turn": uid is not None and state.get("turn") == uid,
            "my_lines": lines.get(uid, 0) if uid else 0,
            "win_lines": self.svc.variant(state).win_lines,
            "clocks": {
                p: format_time(self.svc.remaining_clock(state, p)) for p in players
            },
            "turn_text": turn_line(state, uid),
            "result": result_line(state, uid),
        }
