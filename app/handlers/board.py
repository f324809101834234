from __future__ import annotations

from app.handlers.base import BaseHandler


class BoardHandler(BaseHandler):
    def randomize_board(self, code: str) -> tuple[bool, str, list[int] | None]:
        state, msg = self._read(code)
        if state is None:
            return False, msg, None
        return True, "OK", self.svc.boards.build_board(self.svc.pool(state))

    def place_number(
        self, board: list[int | None], index: int, number: int
    ) -> list[int | None]:
        return self.svc.boards.place_number(board, index, number)

    def confirm_board(
        self, code: str, uid: str | None, board: list
    ) -> tuple[bool, str]:
        ok, msg, _ = self._act(code, uid, lambda st: self.svc.set_board(st, uid, board))
        if not ok:
            return False, msg
        if msg == "PLAYING":
            return True, "All boards are ready. Let's play!"
        return True, "Board confirmed! Waiting for the other players..."
