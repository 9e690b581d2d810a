"""
Database engine helpers.

Builds SQLAlchemy engines for the configured database URL. SQLite needs
a few connection tweaks: foreign keys are off by default and pysqlite's
own transaction handling breaks SAVEPOINT, which the importer relies on
to roll back a single bad row.
"""

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Pool options that SQLite's pools do not accept
_SQLITE_IGNORED_OPTIONS = ('pool_size', 'max_overflow')


def _enable_sqlite_features(engine: Engine):
    """Turn on foreign keys and hand transaction control to SQLAlchemy."""

    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def create_db_engine(database_url: str, echo: bool = False, **engine_kwargs) -> Engine:
    """
    Create a database engine.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL
        **engine_kwargs: Extra options passed to create_engine

    Returns:
        Configured SQLAlchemy engine
    """
    url = make_url(database_url)

    if url.get_backend_name() != 'sqlite':
        return create_engine(database_url, echo=echo, **engine_kwargs)

    for option in _SQLITE_IGNORED_OPTIONS:
        engine_kwargs.pop(option, None)

    if url.database in (None, '', ':memory:'):
        # One shared connection so every session sees the same in-memory database
        engine_kwargs.setdefault('poolclass', StaticPool)
    else:
        db_dir = os.path.dirname(url.database)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={'check_same_thread': False},
        **engine_kwargs
    )
    _enable_sqlite_features(engine)

    logger.debug(f"Created SQLite engine for {url.database or ':memory:'}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
