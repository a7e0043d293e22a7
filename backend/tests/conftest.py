import os

# The app's own engine must never touch a file database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from leaguehub.database import get_session  # noqa: E402
from leaguehub.main import app  # noqa: E402
from leaguehub.models.team import Team  # noqa: E402
from leaguehub.models.tournament import Tournament  # noqa: E402
from leaguehub.routes.realtime import get_publisher  # noqa: E402
from leaguehub.services.realtime import RecordingPublisher  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are created before and dropped after every test
# 4. App dependencies (session, publisher) overridden in client_fixture
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from leaguehub.models.match import Match  # noqa: F401
    from leaguehub.models.notification import Notification  # noqa: F401
    from leaguehub.models.player import Player  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="publisher")
def publisher_fixture():
    return RecordingPublisher()


@pytest.fixture(name="client")
def client_fixture(session: Session, publisher: RecordingPublisher):
    """Provide a test client with overridden database session and publisher

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_publisher] = lambda: publisher

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="make_league")
def make_league_fixture(session: Session):
    """Factory: tournament with the given team names (registration order kept)"""

    def _make(team_names, name="Test League"):
        tournament = Tournament(name=name, format="Round Robin")
        session.add(tournament)
        session.commit()
        session.refresh(tournament)

        teams = []
        for team_name in team_names:
            team = Team(tournament_id=tournament.id, name=team_name)
            session.add(team)
            session.commit()
            session.refresh(team)
            teams.append(team)
        return tournament, teams

    return _make
