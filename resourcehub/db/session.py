from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from resourcehub.core.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str):
    """
    Build the engine for a database URL.

    PostgreSQL gets a pre-pinged, recycled connection pool. SQLite (local
    development and tests) shares one connection so in-memory databases
    survive across sessions, and enforces foreign keys like PostgreSQL does.
    """
    if not database_url:
        logger.error("DATABASE_URL is not set or empty!")
        raise ValueError("DATABASE_URL environment variable is required")

    if database_url.startswith("sqlite"):
        db_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Check connection before using from pool
        pool_recycle=3600,   # Recycle connections after 1 hour
    )


# Create database engine with connection pool
try:
    engine = create_db_engine(settings.DATABASE_URL)
    logger.info("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Create session factory for database interactions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all SQLAlchemy models
Base = declarative_base()

# Database session dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
