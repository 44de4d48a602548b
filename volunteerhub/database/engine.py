from sqlmodel import create_engine, SQLModel
from sqlalchemy import event
from sqlalchemy.engine import Engine
from typing import Optional
import logging

from volunteerhub.core.config import settings, Settings
import volunteerhub.models  # noqa: F401  registers every table

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_engine(database_url: str, config: Optional[Settings] = None, **kwargs) -> Engine:
    """
    Create an engine with the transaction semantics the coordinator relies on.

    PostgreSQL runs every transaction at the configured isolation level.
    SQLite has no row locks, so every transaction is opened with
    BEGIN IMMEDIATE, which serialises writers on the database file.
    """
    config = config or settings

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=config.DB_ECHO,
            connect_args={
                "check_same_thread": False,
                "timeout": config.SQLITE_BUSY_TIMEOUT_SECONDS,
            },
            **kwargs,
        )
        _install_sqlite_hooks(engine)
        return engine

    return create_engine(
        database_url,
        echo=config.DB_ECHO,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        isolation_level=config.TRANSACTION_ISOLATION_LEVEL,
        **kwargs,
    )


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url)
        logger.info(f"Database engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def create_db_and_tables(engine: Optional[Engine] = None):
    SQLModel.metadata.create_all(engine or get_engine())


