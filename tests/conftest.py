import os
import tempfile
import uuid

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault(
    "SQLITE_FILE_NAME",
    os.path.join(tempfile.gettempdir(), f"restaurant-sessions-test-{os.getpid()}.db"),
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401
from core.security import create_access_token
from crud.auth import create_user_with_password
from db.session import get_db
from main import app

PASSWORD = "secret123"


class RecordingEvents:
    """Stands in for the connection manager and keeps what was emitted."""

    def __init__(self):
        self.staff = []
        self.users = []
        self.access = []
        self.rooms = []
        self.revoked_users = []
        self.revoked_sessions = []

    async def broadcast_to_staff(self, message, table_number=None):
        self.staff.append((message, table_number))
        return 1

    async def send_to_user(self, message, user_id):
        self.users.append((message, user_id))
        return 1

    async def broadcast(self, message, rooms):
        self.rooms.append((message, tuple(rooms)))
        return 1

    def update_user_access(self, user_id, role, is_approved):
        self.access.append((user_id, role, is_approved))

    def revoke_user(self, user_id):
        self.revoked_users.append(user_id)
        return 1

    def revoke_session(self, session_id):
        self.revoked_sessions.append(session_id)
        return 1

    def staff_types(self):
        return [message.type for message, _ in self.staff]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def override_db(engine):
    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_db):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user(db):
    def factory(role="waiter", is_approved=True, email=None, name="Test User"):
        return create_user_with_password(
            db,
            email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
            password=PASSWORD,
            name=name,
            role=role,
            is_approved=is_approved,
        )

    return factory


def token_for(user) -> str:
    return create_access_token(user.id, user.email)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
