# tests/conftest.py
import os
import tempfile
from datetime import date, datetime

# Must be set before askdata.settings is imported: no model download,
# no tables created on the default engine.
os.environ.setdefault("ASKDATA_LLM_ENABLED", "false")
os.environ.setdefault("ASKDATA_CREATE_TABLES", "false")
os.environ.setdefault("ASKDATA_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from askdata.main import app
from askdata.db import Base, get_db
from askdata.models import Agent, Inquiry
from askdata.nl.translator import IntentTranslator
from askdata.routers.query import get_translator

# The sample data is from June 2025; pin "today" just after it.
TODAY = date(2025, 7, 31)


# --- Temporary SQLite DB file for the whole test session ---
@pytest.fixture(scope="session")
def tmp_db_url():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    try:
        os.remove(path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(tmp_db_url):
    eng = create_engine(tmp_db_url, connect_args={"check_same_thread": False}, future=True)
    Base.metadata.create_all(bind=eng)
    return eng


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    db = TestingSession()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# --- Override FastAPI's DB dependency to use our test session ---
@pytest.fixture(autouse=True)
def override_get_db(db_session):
    def _get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class FakeGenerator:
    """Stands in for the language model: returns a canned reply and records the prompts."""

    def __init__(self, reply=None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, system, user, max_new_tokens=None):
        self.calls.append({"system": system, "user": user, "max_new_tokens": max_new_tokens})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def use_model():
    """
    use_model('{"table": ...}') routes /query through a FakeGenerator with that reply;
    use_model(None) disables the model so the rule-based parser answers.
    """
    def _use(reply=None, error=None):
        generator = None if reply is None and error is None else FakeGenerator(reply, error)
        translator = IntentTranslator(generator, today=TODAY)
        app.dependency_overrides[get_translator] = lambda: translator
        return generator
    return _use


# --- Utility: clear tables in FK-safe order ---
def _clear_all(db):
    db.execute(text("DELETE FROM inquiries"))
    db.execute(text("DELETE FROM agents"))
    db.commit()


@pytest.fixture
def seed_sample(db_session):
    """
    Three agents and seven inquiries, mostly from June 2025:
      status:  Won x2, Lost x2, Pending x1, Contacted x1, NULL x1
      source:  PRYPCO One x4, Campaign Handover x2, NULL x1
      I6 has no agent.
    """
    _clear_all(db_session)

    agents = [
        Agent(agents_id="A1", first_name="Sara", last_name="Khan", email_address="sara@example.com",
              years_of_experience=5, sign_up_timestamp=date(2025, 1, 10),
              sales_team_agency_supabase="Team A", agency_name_supabase="Prime Homes"),
        Agent(agents_id="A2", first_name="Omar", last_name="Ali", email_address="omar@example.com",
              years_of_experience=2, sign_up_timestamp=date(2025, 3, 5),
              sales_team_agency_supabase="Team B", agency_name_supabase="Prime Homes"),
        Agent(agents_id="A3", first_name="Lina", last_name="Haddad", email_address="lina@example.com",
              years_of_experience=8, sign_up_timestamp=date(2025, 6, 15),
              sales_team_agency_supabase="Team A", agency_name_supabase="Blue Key"),
    ]
    db_session.add_all(agents)
    db_session.commit()

    inquiries = [
        Inquiry(inquiry_id="I1", agent_id="A1", property_id="PROP-25-00111",
                inquiry_created_ts=datetime(2025, 6, 2, 10, 0), source="PRYPCO One", status="Won",
                ts_won=datetime(2025, 6, 20, 9, 0)),
        Inquiry(inquiry_id="I2", agent_id="A1", property_id="PROP-25-00112",
                inquiry_created_ts=datetime(2025, 6, 10, 12, 30), source="PRYPCO One", status="Lost",
                lost_reason="Unresponsive"),
        Inquiry(inquiry_id="I3", agent_id="A2", property_id="PROP-25-00111",
                inquiry_created_ts=datetime(2025, 6, 25, 8, 15), source="Campaign Handover", status="Won"),
        Inquiry(inquiry_id="I4", agent_id="A2", property_id="PROP-25-00113",
                inquiry_created_ts=datetime(2025, 6, 28, 17, 45), source="PRYPCO One", status="Pending"),
        Inquiry(inquiry_id="I5", agent_id="A3", property_id="PROP-25-00114",
                inquiry_created_ts=datetime(2025, 5, 20, 11, 0), source="Campaign Handover", status="Lost",
                lost_reason="Not interested"),
        Inquiry(inquiry_id="I6", agent_id=None, property_id="PROP-25-00115",
                inquiry_created_ts=datetime(2025, 6, 29, 14, 0), source=None, status=None),
        Inquiry(inquiry_id="I7", agent_id="A3", property_id="PROP-25-00116",
                inquiry_created_ts=datetime(2025, 7, 3, 9, 30), source="PRYPCO One", status="Contacted"),
    ]
    db_session.add_all(inquiries)
    db_session.commit()
