import logging

from sqlalchemy import Engine
from sqlmodel import SQLModel, create_engine

from trackshield.core.config import settings

logger = logging.getLogger(__name__)


def get_engine(echo: bool = False, url: str | None = None) -> Engine:
    _url = url or settings.SQLALCHEMY_DATABASE_URI
    if _url.startswith("sqlite"):
        _connect_args = {"check_same_thread": False}
    else:
        _connect_args = {"options": f"-csearch_path={settings.POSTGRES_SCHEMA},public"}
    return create_engine(_url, connect_args=_connect_args, echo=echo)


def init_db(engine: Engine) -> None:
    """Create all tables known to the SQLModel metadata."""
    from trackshield import models  # noqa: F401

    logger.info("Creating tables on %s", engine.url.render_as_string())
    SQLModel.metadata.create_all(engine)
