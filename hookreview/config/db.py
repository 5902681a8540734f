from sqlmodel import SQLModel, create_engine

from hookreview.config import settings
from hookreview.utils.logger import logger

engine = None


def get_engine():
    global engine
    if engine is None:
        logger.info("Database engine is not initialized. Creating a new one.")
        database_url = settings.DATABASE_URL
        connect_args = {}
        if database_url.startswith("sqlite"):
            logger.info("Using SQLite database.")
            # Worker threads share the engine with the request thread.
            connect_args["check_same_thread"] = False
        else:
            logger.info("Using a non-SQLite database (e.g., PostgreSQL).")

        engine = create_engine(
            database_url, echo=settings.DEBUG_MODE, connect_args=connect_args
        )
        logger.info("Database engine created successfully.")
    return engine


def init_db(db_engine=None):
    """Create every table known to the models package."""
    # Imported for their side effect of registering tables on SQLModel.metadata.
    from hookreview.models import hot_keyword, repository, review_record, rule  # noqa: F401

    SQLModel.metadata.create_all(db_engine or get_engine())