"""Pytest configuration and fixtures."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import estimator.models  # noqa: F401
from estimator.database import Base, get_db
from estimator.main import app
from estimator.models.user import UserRole
from estimator.permissions import AuthSession
from estimator.services.catalog import MaterialCatalog
from estimator.services.users import UserDirectory

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite://"

ADMIN_PASSWORD = "admin123"


@pytest.fixture
def db_engine():
    """Create test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Create test database session."""
    session_maker = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = session_maker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def directory(db_session) -> UserDirectory:
    """User directory with the default administrator bootstrapped."""
    directory = UserDirectory(db_session)
    directory.ensure_default_admin()
    return directory


@pytest.fixture
def catalog(db_session) -> MaterialCatalog:
    return MaterialCatalog(db_session)


@pytest.fixture
def admin_session(directory) -> AuthSession:
    return directory.authenticate("admin", ADMIN_PASSWORD)


@pytest.fixture
def login_as(directory, admin_session):
    """Create a user with the given role and return a logged-in session for it."""
    def _login_as(role: UserRole, username: str = None) -> AuthSession:
        username = username or role.value.lower()
        directory.register(admin_session, username, f"{username}@example.com", "password", role)
        return directory.authenticate(username, "password")
    return _login_as


@pytest.fixture
def client(db_session, directory):
    """Create test HTTP client."""
    def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Log in through the API and return bearer headers."""
    def _auth_headers(username: str = "admin", password: str = ADMIN_PASSWORD) -> dict:
        response = client.post(
            "/api/auth/login",
            data={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _auth_headers
