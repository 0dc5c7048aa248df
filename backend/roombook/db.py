from __future__ import annotations

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from roombook.core.config import settings


def _use_immediate_transactions(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    SQLite has no row locks, so the overlap check in ``propose_booking`` is
    only serialized against other writers if the transaction holds the
    RESERVED lock before it reads.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs: Any) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    engine = create_engine(database_url, connect_args=connect_args, **kwargs)
    if database_url.startswith("sqlite"):
        _use_immediate_transactions(engine)
    return engine


engine = build_engine(settings.DATABASE_URL)


def init_db(bind: Engine | None = None) -> None:
    """Create database tables in environments without migrations."""
    # Register every table on the metadata before create_all
    import roombook.models  # noqa: F401

    SQLModel.metadata.create_all(bind=bind or engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
