import logging

from sqlalchemy import inspect

from resourcehub.db import base  # noqa: F401  registers every model on Base.metadata
from resourcehub.db.session import Base, engine as default_engine

logger = logging.getLogger(__name__)


def create_all_tables(engine=None) -> bool:
    engine = engine or default_engine
    try:
        inspector = inspect(engine)
        existing_tables = inspector.get_table_names()

        Base.metadata.create_all(bind=engine)

        new_tables = set(inspect(engine).get_table_names()) - set(existing_tables)
        if new_tables:
            logger.info(f"Created new tables: {new_tables}")

        return True
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Creating database tables")
    create_all_tables()
    logger.info("Database tables created")
