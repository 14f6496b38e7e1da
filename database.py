from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import DATABASE_ECHO, DATABASE_URL, SQLITE_BUSY_TIMEOUT

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(
    db_url: str = DATABASE_URL, *, echo: bool = DATABASE_ECHO
) -> Tuple[Engine, sessionmaker]:
    """Return an engine/session factory pair for ``db_url``.

    SQLite connections are shared across threads, wait up to
    ``SQLITE_BUSY_TIMEOUT`` seconds for the write lock and enforce foreign keys.
    """
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}

    engine = create_engine(db_url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return engine, factory


engine, SessionLocal = create_session_factory()


def init_db(bind: Optional[Engine] = None):
    # Importing registers the mapped tables on Base.metadata.
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def acquire_write_lock(session: Session):
    """Open the transaction holding the store's write lock.

    SQLite allows a single writer, so ``BEGIN IMMEDIATE`` serializes
    concurrent units of work up front instead of failing one of them at
    commit time. Other dialects lock the rows they read ``FOR UPDATE``.
    """
    if session.get_bind().dialect.name == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Run the enclosed reads and writes as one transaction."""
    acquire_write_lock(session)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
