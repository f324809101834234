from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import settings


class Base(DeclarativeBase): ...


def _connect_args(url: str) -> dict:
    # timer jobs open sessions from the scheduler's worker threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 15}
    return {}


engine = create_engine(settings.DB_URL, connect_args=_connect_args(settings.DB_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    """Create the games table. Models register on import."""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    Base.metadata.drop_all(bind=engine)


@contextmanager
def get_session() -> Iterator[Session]:
    with SessionLocal() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
