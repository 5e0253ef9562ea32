import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from survey_studio.db import init_db
from survey_studio.surveys.store import SurveyStore


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine):
    return SurveyStore(engine)
