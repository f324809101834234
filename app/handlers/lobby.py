from __future__ import annotations

import logging
from typing import Any

from app.handlers.base import BaseHandler, CONNECTION_MESSAGE, SIGN_IN_MESSAGE
from app.database.store import StoreUnavailableError
from app.utils.identity import new_game_code


logger = logging.getLogger(__name__)


class LobbyHandler(BaseHandler):
    def create_game(
        self, host_id: str | None, host_name: str | None = None, **config: Any
    ) -> tuple[bool, str]:
        """Create a game with the host seated; returns (True, game code)."""
        if not host_id:
            return False, SIGN_IN_MESSAGE

        try:
            for _ in range(3):
                code = new_game_code()
                state = self.svc.new_game_state(code, host_id=host_id, **config)
                ok, _ = self.svc.join(state, host_id, host_name)
                if not ok:
                    return False, "Could not seat the host."
                if self.store.create(code, state) is not None:
                    logger.info("game %s created by %s", code, host_id)
                    return True, code
        except ValueError as e:
            return False, str(e)
        except StoreUnavailableError:
            logger.warning("store unavailable, game not created for %s", host_id)
            return False, CONNECTION_MESSAGE

        return False, "Could not create a new game. Please try again."

    def join_game(
        self, code: str, uid: str | None, name: str | None = None
    ) -> tuple[bool, str]:
        ok, msg, _ = self._act(code, uid, lambda st: self.svc.join(st, uid, name))
        if not ok:
            return False, msg
        if msg == "SETUP":
            return True, "Everyone is here. Set up your board!"
        return True, "Joined. Waiting for more players..."

    def start_game(self, code: str, uid: str | None) -> tuple[bool, str]:
        ok, msg, _ = self._act(code, uid, lambda st: self.svc.start(st, uid))
        if not ok:
            return False, msg
        return True, "Set up your board!"
