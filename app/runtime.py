import logging

from app.database.store import GameStore
from app.domain.entities import GameStatus
from app.handlers import BoardHandler, LobbyHandler, PlayHandler
from app.services.game_service import GameService
from app.utils.db_manager import init_db
from app.workers.scheduler import shutdown_scheduler, start_scheduler
from app.workers.timers import set_store, sync_timers


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("bingo")


class BingoRuntime:
    """Wires the document store, the timer registry and the action handlers."""

    def __init__(self, svc: GameService | None = None) -> None:
        self.svc = svc or GameService()
        self.store = GameStore()

        set_store(self.store, self.svc)
        self._unwatch = self.store.watch_all(sync_timers)

        self.lobby = LobbyHandler(self.store, self.svc)
        self.boards = BoardHandler(self.store, self.svc)
        self.play = PlayHandler(self.store, self.svc)

    def start(self) -> None:
        init_db()
        start_scheduler()
        active = self.store.snapshots_by_status(
            GameStatus.setup.value, GameStatus.playing.value
        )
        for state in active:
            sync_timers(state)
        logger.info("Bingo runtime started, %s active games", len(active))

    def stop(self) -> None:
        self._unwatch()
        shutdown_scheduler()
        logger.info("Bingo runtime stopped")
