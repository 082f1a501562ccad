import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.exc import SQLAlchemyError

from config import Config

logger = logging.getLogger(__name__)

# Define Base for SQLAlchemy models before the engine is used anywhere
DATABASE_URL = Config.DATABASE_URL
if not DATABASE_URL:
    logger.error("DATABASE_URL environment variable not set.")
    raise ValueError("DATABASE_URL environment variable not set.")

engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def make_session_factory(url, **engine_kwargs):
    """Build a sessionmaker bound to a fresh engine (tests, one-off scripts)."""
    bind = create_engine(url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


def init_db(bind=None):
    """Create all tables known to Base. Alembic is the normal path in production."""
    # Import models so they register with Base.metadata
    import models  # noqa: F401

    bind = bind if bind is not None else engine
    logger.info(f"Creating tables on {bind.url!r}")
    Base.metadata.create_all(bind=bind)


# Context manager for SQLAlchemy sessions (used by the Flask routes and the CLI)
@contextmanager
def get_db_session(session_factory=None):
    """Provide a transactional scope around a series of SQLAlchemy operations."""
    factory = session_factory or SessionLocal
    db = factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"SQLAlchemy Session Error: {e}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"General Session Error: {e}")
        raise
    finally:
        db.close()
