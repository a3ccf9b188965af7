import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def create_db_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across request threads."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine(get_settings().database_url)
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Creates all plan store tables.
    """
    from . import schema  # noqa: F401  registers the models with Base
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Plan store schema ready at %s", engine.url)

