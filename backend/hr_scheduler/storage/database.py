from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from ..utils.config import settings
from ..utils.logger import logger


def make_engine(database_url: str = settings.database_url):
    """SQLite needs a shared connection for in-memory databases and cross-thread use."""
    kwargs = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


engine = make_engine()


def init_db(bind=None) -> None:
    """Create tables if missing; prefer migrations in production."""
    from . import models  # noqa: F401  registers the table metadata

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Booking tables ready")
