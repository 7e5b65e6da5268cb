from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from ballotbox.core.settings import get_settings


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        # check_same_thread=False is required for SQLite when using threads (Uvicorn workers)
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        _serialize_sqlite_writes(engine)
    return engine


def _serialize_sqlite_writes(engine: Engine) -> None:
    # pysqlite delays BEGIN until the first write, so a count read before an
    # insert is not covered by the write lock. Take over transaction control
    # and start every transaction with BEGIN IMMEDIATE.
    @event.listens_for(engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


engine = create_db_engine(get_settings().database_url)

SessionLocal = make_session_factory(engine)


def init_db(bind: Optional[Engine] = None) -> None:
    # Import the models so their tables are registered on Base.metadata.
    from ballotbox import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
