from __future__ import annotations

from sqlalchemy.types import JSON
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.utils.db_manager import Base


class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )

    status: Mapped[str] = mapped_column(nullable=False, default="waiting")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # whole game document; status above mirrors state["status"] for queries
    state: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
