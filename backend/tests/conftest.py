from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from courier_dispatch import models  # noqa: F401
from courier_dispatch.api.deps import get_db, get_directions
from courier_dispatch.main import app
from tests.utils.utils import make_directions


@pytest.fixture(name="engine")
def engine_fixture() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def get_db_override() -> Generator[Session, None, None]:
        yield db

    # No API key: every provider lookup degrades to the straight-line estimate
    app.dependency_overrides[get_db] = get_db_override
    app.dependency_overrides[get_directions] = lambda: make_directions(api_key="")
    yield TestClient(app)
    app.dependency_overrides.clear()
