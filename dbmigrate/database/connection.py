from typing import Callable, TypeVar

from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from dbmigrate.config.settings import Settings

T = TypeVar("T")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create the database engine.

    pysqlite does not put DDL inside a transaction on its own, so for SQLite
    the engine takes over BEGIN. A migration's table and column changes then
    commit or roll back together with its history row.
    """
    engine = create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
    )

    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactional_ddl(engine)

    logger.debug(f"Database engine created for dialect '{engine.dialect.name}'")
    return engine


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create the engine described by the settings"""
    return create_db_engine(settings.database_url, echo=settings.database_echo)


def _enable_sqlite_transactional_ddl(engine: Engine):
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from issuing its own BEGIN/COMMIT
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def run_in_transaction(engine: Engine, fn: Callable[[Session], T]) -> T:
    """
    Run fn(session) inside a single transaction.

    Commits when fn returns normally; rolls back and re-raises on any
    exception. The connection goes back to the pool once the session closes.
    """
    with Session(engine) as session:
        with session.begin():
            return fn(session)
