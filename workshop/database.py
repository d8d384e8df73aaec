import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_SECONDS,
)

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": DB_POOL_RECYCLE,
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_timeout": DB_POOL_TIMEOUT,
    }


def watch_slow_queries(bind, threshold: float = DB_SLOW_QUERY_SECONDS):
    """Warn about statements slower than threshold seconds (0 turns it off)"""
    if threshold <= 0:
        return

    @event.listens_for(bind, "before_cursor_execute")
    def _start(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("started", []).append(time.perf_counter())

    @event.listens_for(bind, "after_cursor_execute")
    def _finish(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["started"].pop()
        if elapsed > threshold:
            logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}...")


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
watch_slow_queries(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
