import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, enable_sqlite_foreign_keys
from app.models.lists import Item, ItemList
from app.services import web_lists as web_lists_service
from app.services.session_store import CrudSessionStore


@pytest.fixture(autouse=True)
def _no_session_redis(monkeypatch):
    monkeypatch.delenv("SESSION_REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def sessions():
    """Session store backed by a private in-memory dict."""
    return CrudSessionStore(uuid.uuid4().hex, fallback_store={})


@pytest.fixture()
def item_list(db_session):
    item_list = ItemList(name="Groceries")
    db_session.add(item_list)
    db_session.commit()
    db_session.refresh(item_list)
    return item_list


@pytest.fixture()
def make_items(db_session):
    def _make(item_list, names):
        items = [Item(name=name, list_id=item_list.id) for name in names]
        db_session.add_all(items)
        db_session.commit()
        return [item.id for item in items]

    return _make


@pytest.fixture()
def list_facade(db_session):
    return web_lists_service.list_facade(db_session)


@pytest.fixture()
def item_facade(db_session, item_list):
    return web_lists_service.item_facade(db_session, item_list.id)
