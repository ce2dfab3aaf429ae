from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mythcombat.api.main import app
from mythcombat.db.base import Base
import mythcombat.db.session as db_session
import mythcombat.db.init_db as db_init
from mythcombat.db.deps import get_db


@pytest.fixture(scope="session")
def engine():
    # one in-memory connection shared by the whole test session
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    db_session.enable_sqlite_savepoints(eng)
    return eng


@pytest.fixture(scope="session")
def TestingSessionLocal(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(scope="session", autouse=True)
def _patch_db(engine, TestingSessionLocal):
    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    db_init.engine = engine

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(TestingSessionLocal):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def new_player(client):
    def _make(*, player_id="p1", stats=None, items=()):
        r = client.post("/campaigns", json={"name": "Ash Coast"})
        assert r.status_code == 200, r.text
        campaign_id = r.json()["id"]

        body = {"player_id": player_id, "name": "Aria"}
        if stats is not None:
            body["stats"] = stats
        r = client.post(f"/campaigns/{campaign_id}/characters", json=body)
        assert r.status_code == 200, r.text
        character = r.json()

        for item in items:
            r = client.post(f"/characters/{character['id']}/items", json=item)
            assert r.status_code == 200, r.text
        return campaign_id, character

    return _make
