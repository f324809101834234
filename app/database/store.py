from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.database.repos import GameRepo, OptimisticLockError
from app.utils.db_manager import get_session
from config import Settings


logger = logging.getLogger(__name__)

Listener = Callable[[dict], None]
Mutator = Callable[[dict], tuple[bool, str]]

CONFLICT_MESSAGE = "The game changed while you were acting. Try again."
NOT_FOUND_MESSAGE = "Game not found."


class StoreUnavailableError(Exception): ...


class GameStore:
    """Game documents with compare-and-swap writes and change notifications.

    ``update`` re-reads the document on every attempt and runs the mutator
    against that fresh copy, so a caller never writes a decision computed
    from an outdated snapshot. Listeners receive a private copy of the
    document after each committed write.
    """

    def __init__(self, retries: int | None = None) -> None:
        self.retries = int(retries or Settings.OPTIMISTIC_RETRIES)
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._watchers: list[Listener] = []

    # -------------------- read / create --------------------

    def create(self, code: str, state: dict) -> dict | None:
        try:
            with get_session() as s:
                repo = GameRepo(s)
                if repo.get_by_code(code) is not None:
                    return None
                game = repo.create_game(code, copy.deepcopy(state))
                created = copy.deepcopy(game.state)
        except IntegrityError:
            return None
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e)) from e

        self._notify(code, created)
        return created

    def snapshot(self, code: str) -> dict | None:
        try:
            with get_session() as s:
                game = GameRepo(s).get_by_code(code)
                if game is None:
                    return None
                return copy.deepcopy(game.state or {})
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e)) from e

    def snapshots_by_status(self, *statuses: str) -> list[dict]:
        try:
            with get_session() as s:
                games = GameRepo(s).list_by_status(list(statuses))
                return [copy.deepcopy(g.state or {}) for g in games]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e)) from e

    # -------------------- write --------------------

    def update(self, code: str, mutate: Mutator) -> tuple[bool, str, dict | None]:
        """Apply ``mutate`` to the latest document; write only if it accepts."""
        committed: dict | None = None
        ok, msg = False, CONFLICT_MESSAGE

        try:
            with get_session() as s:
                repo = GameRepo(s)
                for attempt in range(self.retries):
                    game = repo.get_by_code(code)
                    if game is None:
                        return False, NOT_FOUND_MESSAGE, None

                    state = copy.deepcopy(game.state or {})
                    ok, msg = mutate(state)
                    if not ok:
                        return False, msg, state

                    try:
                        repo.save(
                            game,
                            expected_version=game.version,
                            status=state.get("status"),
                            state=state,
                        )
                    except OptimisticLockError:
                        logger.debug(
                            "game %s: version conflict (attempt %s)", code, attempt + 1
                        )
                        s.expire_all()
                        ok, msg = False, CONFLICT_MESSAGE
                        continue

                    committed = state
                    break
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e)) from e

        if committed is None:
            return False, msg, None

        self._notify(code, committed)
        return ok, msg, copy.deepcopy(committed)

    # -------------------- subscribe --------------------

    def subscribe(self, code: str, listener: Listener) -> Callable[[], None]:
        self._listeners[code].append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners[code].remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def watch_all(self, listener: Listener) -> Callable[[], None]:
        self._watchers.append(listener)

        def unsubscribe() -> None:
            try:
                self._watchers.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def _notify(self, code: str, state: dict) -> None:
        for listener in [*self._watchers, *self._listeners.get(code, [])]:
            try:
                listener(copy.deepcopy(state))
            except Exception:
                logger.exception("game %s: listener %r failed", code, listener)
