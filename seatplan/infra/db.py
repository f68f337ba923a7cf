from __future__ import annotations

import logging
import os

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg://seatplan:seatplan@db:5432/seatplan",
)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)


def get_engine() -> Engine:
    return engine


def init_db(*, reset: bool = False) -> None:
    # Registers the table classes on SQLModel.metadata.
    from seatplan.domain import models  # noqa: F401

    if reset:
        logger.warning("dropping all tables on %s", get_engine().url.render_as_string(hide_password=True))
        SQLModel.metadata.drop_all(get_engine())
    SQLModel.metadata.create_all(get_engine())


def check_db_ready() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database readiness check failed")
        return False
