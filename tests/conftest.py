from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from cardscheduler.core.config import settings
from cardscheduler.core.database import get_session
from cardscheduler.main import app
from cardscheduler.models import Card, Question
from cardscheduler.schemas.card import CardState
from cardscheduler.schemas.settings import SchedulerConfig

# Friday morning, UTC
NOW = datetime(2024, 3, 15, 10, 30)


@pytest.fixture(autouse=True)
def scheduler_settings(monkeypatch):
    monkeypatch.setattr(settings, "scheduler_timezone", "UTC")
    monkeypatch.setattr(settings, "store_retry_attempts", 3)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def config():
    return SchedulerConfig()


@pytest.fixture
def make_question(session):
    """Factory for persisted questions."""
    def _make(**overrides):
        values = dict(
            subject_id=1,
            subtopic_id=10,
            year=2023,
            status="active",
            question_text="Which planet is closest to the sun?",
            option_a="Venus",
            option_b="Mercury",
            option_c="Earth",
            option_d="Mars",
            correct_option="b",
            created_at=NOW,
            updated_at=NOW,
        )
        values.update(overrides)
        question = Question(**values)
        session.add(question)
        session.commit()
        session.refresh(question)
        return question
    return _make


@pytest.fixture
def make_card(session, make_question):
    """Factory for persisted cards; creates a question unless one is given."""
    def _make(user_id=1, question=None, **overrides):
        question = question or make_question()
        values = dict(
            user_id=user_id,
            question_id=question.id,
            card_type="new",
            due_date=NOW,
            created_at=NOW,
            updated_at=NOW,
        )
        values.update(overrides)
        card = Card(**values)
        session.add(card)
        session.commit()
        session.refresh(card)
        return card
    return _make


def make_state(**overrides) -> CardState:
    """Build a card state, defaulting to a fresh new card due now."""
    values = dict(
        card_type="new",
        ease_factor=2.50,
        interval_days=0,
        repetitions=0,
        lapses=0,
        learning_step=0,
        due_date=NOW,
    )
    values.update(overrides)
    return CardState(**values)
