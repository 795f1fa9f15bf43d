## Database engine and session factory
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from programme_designer.settings import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across the threadpool FastAPI runs sync routes in
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db() -> None:
    # importing the models registers their tables on Base.metadata
    from programme_designer.db.models import module, programme  # noqa: F401
    from programme_designer.db.base import Base

    Base.metadata.create_all(bind=engine)
