from __future__ import annotations

import logging
from typing import Callable

from app.database.store import GameStore, StoreUnavailableError
from app.services.game_service import GameService


logger = logging.getLogger(__name__)

SIGN_IN_MESSAGE = "You are not signed in yet. Reconnect and try again."
CONNECTION_MESSAGE = "Connection problem. Your action was not saved."


class BaseHandler:
    def __init__(self, store: GameStore, svc: GameService | None = None) -> None:
        self.store = store
        self.svc = svc or GameService()

    def _act(
        self, code: str, uid: str | None, action: Callable[[dict], tuple[bool, str]]
    ) -> tuple[bool, str, dict | None]:
        """Run a state-machine action against the latest snapshot of ``code``."""
        if not uid:
            return False, SIGN_IN_MESSAGE, None
        try:
            return self.store.update(code, action)
        except StoreUnavailableError:
            logger.warning("game %s: store unavailable, action by %s dropped", code, uid)
            return False, CONNECTION_MESSAGE, None

    def _read(self, code: str) -> tuple[dict | None, str]:
        try:
            state = self.store.snapshot(code)
        except StoreUnavailableError:
            logger.warning("game %s: store unavailable on read", code)
            return None, CONNECTION_MESSAGE
        if state is None:
            return None, "Game not found."
        return state, "OK"
