# agenda/db.py

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from agenda import config


def build_engine(database_url: str = config.DATABASE_URL, echo: bool = config.DB_ECHO) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={
            "check_same_thread": False,  # required for SQLite + FastAPI
            "timeout": config.SQLITE_BUSY_TIMEOUT_SECONDS,
        },
    )

    # pysqlite only emits BEGIN right before DML, so a SELECT-then-INSERT would
    # run partly outside the transaction. Take over transaction control and open
    # every transaction with the write lock already held.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine()


def init_db(target: Engine = engine) -> None:
    # models must be imported so their tables are registered on the metadata
    from agenda import models  # noqa: F401

    SQLModel.metadata.create_all(target)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
