"""
Pytest fixtures for decision tree CMS tests.

Uses an in-memory SQLite DB for speed and isolation.
StaticPool keeps a single connection so the :memory: database (and tables) persist.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from decisiontree import auth
from decisiontree.database import Base, get_db
from decisiontree.main import app
from decisiontree.models_db import AnswerModel, ElementModel, StepModel

TEST_DB = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory DB and tables per test."""
    test_engine = create_engine(
        TEST_DB,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # single connection so :memory: DB and tables persist
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    """ORM session on the test DB, for model-level tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_auth(monkeypatch):
    """Auth disabled (local editor) and an empty rate limit store for every test."""
    monkeypatch.setattr(auth, "API_KEY_ENV", "")
    monkeypatch.setattr(auth, "VIEWER_API_KEY_ENV", "")
    auth._rate_limit_store.clear()
    yield
    auth._rate_limit_store.clear()


@pytest.fixture
def client(session_factory):
    """FastAPI TestClient with test DB."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_step(db, title=None, type_="Question", **kwargs) -> StepModel:
    step = StepModel(title=title, type=type_, **kwargs)
    db.add(step)
    db.flush()
    return step


def add_answer(db, question, title, resulting=None, sort=0) -> AnswerModel:
    answer = AnswerModel(
        title=title,
        sort=sort,
        question_id=question.id,
        resulting_step_id=resulting.id if resulting is not None else None,
    )
    db.add(answer)
    db.flush()
    return answer


@pytest.fixture
def chain(db):
    """
    Element -> root --A1--> S1 --A2--> S2 (Result).

    Returns a dict of the records, committed.
    """
    root = add_step(db, "Do you travel often?")
    s1 = add_step(db, "Do you travel abroad?")
    s2 = add_step(db, "Global plan", "Result")
    a1 = add_answer(db, root, "Yes", s1, sort=1)
    a2 = add_answer(db, s1, "Yes", s2, sort=1)
    element = ElementModel(title="Plans", first_step_id=root.id)
    db.add(element)
    db.commit()
    return {"root": root, "s1": s1, "s2": s2, "a1": a1, "a2": a2, "element": element}
