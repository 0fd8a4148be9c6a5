"""Create (or drop) the users schema. Run as ``python -m greeting_api.db.create_tables``."""
from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from greeting_api.core.logging import logger

from .session import Base, get_engine
from . import models  # noqa: F401  # registers User on Base.metadata


def create_all(engine: Engine | None = None) -> None:
    Base.metadata.create_all(bind=engine or get_engine())


def drop_all(engine: Engine | None = None) -> None:
    Base.metadata.drop_all(bind=engine or get_engine())


if __name__ == "__main__":
    try:
        create_all()
        logger.info("Database tables created successfully.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
