"""Pytest configuration and fixtures."""

import os
import re
from dataclasses import dataclass, field

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"].replace(
        "/todo_accounts", "/todo_accounts_test"
    )
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

# The app engine is built at import time, so point it at the test database first
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src.database import Base, get_db  # noqa: E402
from src.exceptions import UpstreamServiceError  # noqa: E402
from src.main import app  # noqa: E402
from src.models.state import Avatar  # noqa: E402
from src.services.image_host import ImageUpload, get_image_host  # noqa: E402
from src.services.mail_service import get_mail_service  # noqa: E402

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "pw123456"  # noqa: S105
TEST_NAME = "A"


@dataclass
class SentMail:
    recipient: str
    subject: str
    body: str


class FakeMailService:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self) -> None:
        self.sent: list[SentMail] = []
        self.fail = False

    def send(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise UpstreamServiceError()
        self.sent.append(SentMail(recipient, subject, body))

    def last_code(self) -> str:
        """Extract the OTP from the most recent message."""
        match = re.search(r"\d+", self.sent[-1].body)
        assert match, "no code in last message"
        return match.group()


@dataclass
class FakeImageHost:
    """Hands out deterministic avatar references."""

    uploaded: list[str] = field(default_factory=list)
    destroyed: list[str] = field(default_factory=list)

    async def upload(self, image: ImageUpload) -> Avatar:
        public_id = f"todoApp/{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return Avatar(public_id=public_id, url=f"https://img.test/{public_id}.png")

    async def destroy(self, public_id: str) -> None:
        self.destroyed.append(public_id)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def mail():
    return FakeMailService()


@pytest.fixture
def images():
    return FakeImageHost()


@pytest.fixture(scope="function")
def client(db, mail, images):
    """Create a test client with database and collaborator overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_service] = lambda: mail
    app.dependency_overrides[get_image_host] = lambda: images
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client):
    """Return a helper that posts a multipart registration."""

    def _register(email=TEST_EMAIL, password=TEST_PASSWORD, name=TEST_NAME, avatar=True):
        files = {"avatar": ("me.png", b"\x89PNG fake", "image/png")} if avatar else None
        return client.post(
            "/api/v1/register",
            data={"name": name, "email": email, "password": password},
            files=files,
        )

    return _register


@pytest.fixture
def registered(register_user):
    """Register the default user; the client now holds its token cookie."""
    response = register_user()
    assert response.status_code == 201
    return response.json()["user"]
