import asyncio
import logging
import os

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models import Plan, Tag

logger = logging.getLogger(__name__)

# Stored in PRAGMA user_version; 0 means the store predates versioning
SCHEMA_VERSION = 1


class StoreError(Exception):
    """The store could not be opened or initialised."""


class Handle:
    """Shared access to an opened store."""

    def __init__(self, location: str, engine: Engine):
        self.location = location
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def session(self) -> Session:
        return self._sessions()

    def dispose(self):
        self.engine.dispose()

    def __repr__(self):
        return f"Handle({self.location!r})"


def _make_engine(location: str) -> Engine:
    engine = create_engine(URL.create("sqlite", database=location))

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # let SQLAlchemy drive BEGIN itself, see "begin" below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def _create_schema(conn):
    # Plan references Tag, so Tag goes first
    for table in (Tag.__table__, Plan.__table__):
        if inspect(conn).has_table(table.name):
            logger.info(f"Table {table.name} already exists")
            continue
        table.create(conn, checkfirst=True)
        logger.info(f"Created table {table.name}")


def _verify_schema(conn):
    insp = inspect(conn)
    for table in (Tag.__table__, Plan.__table__):
        found = {col["name"] for col in insp.get_columns(table.name)}
        missing = set(table.columns.keys()) - found
        if missing:
            raise StoreError(
                f"table {table.name} is missing columns: {', '.join(sorted(missing))}"
            )


def _bootstrap(engine: Engine):
    # IMMEDIATE takes the write lock up front so two first launches
    # cannot both see an empty store and create the schema twice
    with engine.connect().execution_options(sqlite_begin="IMMEDIATE") as conn:
        with conn.begin():
            version = conn.exec_driver_sql("PRAGMA user_version").scalar()
            if version > SCHEMA_VERSION:
                raise StoreError(
                    f"store schema version {version} is newer than supported ({SCHEMA_VERSION})"
                )
            if version < SCHEMA_VERSION:
                _create_schema(conn)
                conn.exec_driver_sql(f"PRAGMA user_version = {SCHEMA_VERSION}")
            _verify_schema(conn)


def open_store(location: str) -> Handle:
    """Blocking form of acquire_handle."""
    logger.info(f"Searching for database at {location}")
    exists = os.path.exists(location)
    if exists:
        logger.info("Found database")
    else:
        logger.info("Database not found, creating it")

    engine = _make_engine(location)
    try:
        _bootstrap(engine)
    except StoreError:
        engine.dispose()
        raise
    except (SQLAlchemyError, OSError) as e:
        engine.dispose()
        raise StoreError(f"cannot open store at {location}: {e}") from e

    return Handle(location, engine)


async def acquire_handle(location: str) -> Handle:
    """
    Open the store at ``location``, creating it and its tables on first use.

    Safe to call on every start: existing tables are left alone. Raises
    StoreError for any failure; no handle is returned in that case.
    """
    return await asyncio.to_thread(open_store, location)
