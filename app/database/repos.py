from __future__ import annotations
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models import Game


class OptimisticLockError(Exception): ...


class GameRepo:
    def __init__(self, s: Session):
        self.s = s

    def get_by_code(self, code: str) -> Game | None:
        return self.s.scalar(select(Game).where(Game.code == code))

    def create_game(self, code: str, state: dict) -> Game:
        g = Game(
            code=code,
            status=state.get("status") or "waiting",
            state=state,
        )
        self.s.add(g)
        self.s.commit()
        self.s.refresh(g)
        return g

    def list_by_status(self, statuses: list[str]) -> list[Game]:
        return list(
            self.s.scalars(select(Game).where(Game.status.in_(statuses)).order_by(Game.id))
        )

    def save(
        self,
        game: Game,
        expected_version: int,
        *,
        status: str | None = None,
        state: dict | None = None,
    ) -> int:
        new_status = status if status is not None else game.status
        new_state = state if state is not None else game.state

        res = self.s.execute(
            update(Game)
            .where(Game.id == game.id, Game.version == expected_version)
            .values(status=new_status, state=new_state, version=expected_version + 1)
        )
        if res.rowcount != 1:
            self.s.rollback()
            raise OptimisticLockError()
        self.s.commit()
        return expected_version + 1
