"""Test configuration and fixtures."""
import pytest
from fastapi.testclient import TestClient

from draftroom.config import Settings
from draftroom.database import Database
from draftroom.main import create_app
from draftroom.models import User
from draftroom.services.auth_service import Principal
from draftroom.services.security import hash_password, issue_session_token

TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "Passw0rd!"


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        SQLITE_SERIALIZE_WRITES=False,
        SECRET_KEY=TEST_SECRET,
        BCRYPT_ROUNDS=4,
        ADMIN_EMAIL="",
        ADMIN_PASSWORD="",
        _env_file=None,
    )


@pytest.fixture
def database():
    """In-memory SQLite database shared by every session of one test."""
    db = Database("sqlite:///:memory:", serialize_writes=False)
    db.create_tables()
    try:
        yield db
    finally:
        db.drop_tables()
        db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


def _make_user(db_session, username, role="user", must_change_password=False):
    user = User(
        email=f"{username}@example.com",
        username=username,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        role=role,
        must_change_password=must_change_password,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def author(db_session):
    return _make_user(db_session, "author")


@pytest.fixture
def other_author(db_session):
    return _make_user(db_session, "other")


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, "admin", role="admin")


@pytest.fixture
def principal(author):
    return Principal.from_user(author)


@pytest.fixture
def other_principal(other_author):
    return Principal.from_user(other_author)


@pytest.fixture
def client(settings, database):
    app = create_app(settings=settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user row."""
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {issue_session_token(user.id, TEST_SECRET)}"}
    return _headers
