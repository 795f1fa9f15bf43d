import os

# must be set before programme_designer.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from programme_designer.db.base import Base
from programme_designer.db.models import module, programme  # noqa: F401
from programme_designer.deps import get_store, get_templates
from programme_designer.main import app
from programme_designer.store import ModuleStore
from programme_designer.templates.static import StaticTemplateClient


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return ModuleStore(session_factory)


@pytest.fixture
def templates():
    return StaticTemplateClient()


@pytest.fixture
def client(store, templates):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_templates] = lambda: templates
    yield TestClient(app)
    app.dependency_overrides.clear()
