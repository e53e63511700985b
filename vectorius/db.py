from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
import logging

from vectorius.utils import now_utc

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()


def init_db(app):
    """Bind models to the app.

    The tables live in the hosted Postgres and are managed there; create_all
    only runs for local and test databases that opt in.
    """
    # Models must be imported so they are registered on the metadata
    from vectorius import models  # noqa: F401

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            try:
                db.create_all()
                logger.info("Database tables created")
            except SQLAlchemyError as e:
                logger.error(f"Failed to create database tables: {e}")
                raise


__all__ = ["db", "init_db", "now_utc"]
