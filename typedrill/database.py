import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlmodel import SQLModel, create_engine

from typedrill.config import get_settings

logger = logging.getLogger(__name__)


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine, making sure a SQLite file's directory exists."""
    url = database_url or get_settings().DATABASE_URL
    parsed = make_url(url)
    if parsed.drivername.startswith("sqlite") and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=False)


def init_db(engine: Engine) -> None:
    """Create all tables in the database."""
    from typedrill.models.pattern import PatternStat, UserConfig  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.debug("Initialized database at %s", engine.url)
