from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import structlog
from sqlmodel import Session, SQLModel, create_engine

from tgdating.core.config import settings

logger = structlog.get_logger(__name__)


def _connect_args(url: str) -> dict[str, Any]:
    # SQLite connections are shared across the threadpool FastAPI runs sync routes in
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)


def init_db() -> None:
    """Create missing tables on the current engine (dev/test convenience)."""
    from tgdating.models import message, swipe, user  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("database_initialised", url=str(engine.url))


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
