"""
app/db/session.py — Engine, session factory and the unit-of-work helpers.

    get_db()       FastAPI dependency (routes may also commit early via api.dependencies.commit)
    get_session()  context manager for scripts

Every rubric write happens inside exactly one unit of work: commit once
when the block finishes, roll everything back when it raises. A
replace-all-children update therefore never leaves a rubric half rebuilt.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite pools don't accept sizing arguments
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


engine = create_engine(settings.database_url, echo=False, **_engine_kwargs(settings.database_url))

# expire_on_commit=False: headers returned by a service stay readable after commit
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def _unit_of_work() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Rolled back unit of work: %s", exc)
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, committed or rolled back as a whole."""
    yield from _unit_of_work()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager wrapping one unit of work, for scripts."""
    yield from _unit_of_work()
