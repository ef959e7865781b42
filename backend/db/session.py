from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel, create_engine

from core.config import settings


def use_immediate_transactions(engine: Engine) -> Engine:
    """Take the SQLite write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, and two deferred writers can
    deadlock each other into "database is locked".
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# Requests hand the session to worker threads, so SQLite must accept
# connections used outside the thread that opened them.
engine = use_immediate_transactions(create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    connect_args={"check_same_thread": False, "timeout": 30},
))  # type: ignore

SessionLocal = sessionmaker(bind=engine, class_=Session, autocommit=False, autoflush=False)


def init_db() -> None:
    """Create all tables known to the metadata."""
    import models  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(engine)


def get_db() -> Generator[Session, None, None]:
    with SessionLocal() as session:
        yield session
