"""
Database Configuration and Session Management

This module handles SQLAlchemy setup with connection pooling.
Connection pooling is critical for multi-tenant apps to avoid
creating too many database connections.

NOTE: Sessions are plain; tenant scoping happens in the queries
issued by the API layer (every lookup filters on tenant_id).
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool
from taskbrick.config import get_settings
import logging

logger = logging.getLogger(__name__)

settings = get_settings()

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

if _is_sqlite:
    # SQLite is used for local runs and the test suite. It doesn't take
    # pool sizing arguments and must be shared across threads because
    # FastAPI runs sync dependencies in a threadpool.
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG,
    )
else:
    # TRADEOFF: Larger pool = more connections = more memory but better performance
    engine = create_engine(
        settings.DATABASE_URL,
        poolclass=QueuePool,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before using (handles stale connections)
        echo=settings.DEBUG,
    )

# expire_on_commit=False so response models can read attributes after commit
# without another round trip.
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

# Base class for all models
Base = declarative_base()


@event.listens_for(engine, "connect")
def on_connect(dbapi_connection, connection_record):
    """Set connection-level configuration on new connections."""
    cursor = dbapi_connection.cursor()
    if settings.DATABASE_URL.startswith("postgresql"):
        cursor.execute("SET TIME ZONE 'UTC'")
    elif _is_sqlite:
        # ON DELETE CASCADE is ignored by SQLite unless enabled per connection
        cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    logger.debug("New database connection established")


def get_db() -> Session:
    """
    Dependency function that provides a database session.

    The session is automatically closed after the request completes.
    Handlers commit explicitly; anything uncommitted is rolled back on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Create all tables.

    Development and tests only; production schemas are managed with migrations.
    """
    # Import models so they register on Base.metadata
    import taskbrick.models  # noqa: F401

    logger.warning("init_db() called - use migrations in production!")
    Base.metadata.create_all(bind=engine)
