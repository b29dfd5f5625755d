"""
Script to initialize the database with tables and seed data.
"""
import logging

from app.db.base import SessionLocal, engine
from app.db.init_db import init_db
from app.models import Base

logging.basicConfig(level=logging.INFO, format="%(levelname)s:\t%(name)s\t%(message)s")
logger = logging.getLogger(__name__)


def init() -> None:
    """Initialize database."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    logger.info("Seeding initial data...")
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()

    logger.info("Database initialization complete")


if __name__ == "__main__":
    init()
