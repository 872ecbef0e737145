"""SQLModel engine for the claim ledger and signing sessions."""

import logging

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from launchpad.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
)


if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        # Several processes may claim keypairs from the same file
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout = 5000")
        cursor.close()


def create_db_and_tables(bind=None):
    """Create the claim and session tables. Called on startup and by the CLI."""
    import launchpad.models  # noqa: F401

    SQLModel.metadata.create_all(bind if bind is not None else engine)
    logger.info("Database tables ready")


def get_session() -> Session:
    """Dependency that yields a database session."""
    with Session(engine) as session:
        yield session
