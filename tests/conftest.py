import json
import os

# Settings are read at import time; point them at throwaway resources first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GROK_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storyloom.api.deps import ai_rate_limiter, auth_rate_limiter, get_db, get_generation_client
from storyloom.db.base import Base, enable_sqlite_foreign_keys
from storyloom.main import app
from storyloom.models.user import User
from storyloom.services.auth import AuthService
from storyloom.services.generation_client import GenerationClient

TEST_PASSWORD = "Password123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def completion(content, model="grok-2-1212"):
    """A minimal chat-completion payload as the API returns it."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


class FakeGrokAPI:
    """Scripted stand-in for the chat-completions endpoint.

    Queued responses are served in order; once the queue is empty every call
    gets ``default_reply``. Request bodies are recorded in ``requests``.
    """

    def __init__(self, default_reply="The story continues, richer than before."):
        self.default_reply = default_reply
        self.requests = []
        self._queue = []

    def reply(self, content):
        self._queue.append(lambda request: httpx.Response(200, json=completion(content)))

    def fail(self, status_code, message="upstream failure"):
        self._queue.append(
            lambda request: httpx.Response(status_code, json={"error": {"message": message}})
        )

    def raise_error(self, exc_type):
        def _raise(request):
            raise exc_type("simulated transport failure", request=request)

        self._queue.append(_raise)

    def respond_with(self, body, status_code=200):
        self._queue.append(lambda request: httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self._queue:
            return self._queue.pop(0)(request)
        return httpx.Response(200, json=completion(self.default_reply))

    def client(self, **kwargs) -> GenerationClient:
        return GenerationClient(
            "test-key",
            base_url="https://api.x.ai/v1",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            **kwargs,
        )

    @property
    def last_messages(self):
        return self.requests[-1]["messages"]


@pytest.fixture(scope="function")
def db():
    """In-memory database, recreated for every test."""
    Base.metadata.create_all(bind=engine)
    db_session = TestingSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session):
    """Create a test client with the test database and no generation credentials."""

    def override_get_db():
        yield db

    unavailable = GenerationClient(None)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_client] = lambda: unavailable
    auth_rate_limiter.reset()
    ai_rate_limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    auth_rate_limiter.reset()
    ai_rate_limiter.reset()


@pytest.fixture(scope="function")
def grok(client: TestClient):
    """Route generation calls through a scripted fake API."""
    fake = FakeGrokAPI()
    generation_client = fake.client()
    app.dependency_overrides[get_generation_client] = lambda: generation_client
    return fake


@pytest.fixture(scope="function")
def test_user(db: Session):
    """Create a test user."""
    return AuthService.create_user(
        db,
        email="writer@example.com",
        password=TEST_PASSWORD,
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.fixture(scope="function")
def auth_headers(client: TestClient, test_user: User):
    """Create authentication headers with a valid token."""
    response = client.post(
        "/api/auth/login",
        json={"email": test_user.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    token = response.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def other_headers(client: TestClient, db: Session):
    """Headers for a second user who owns nothing."""
    user = AuthService.create_user(db, email="rival@example.com", password=TEST_PASSWORD)
    return {"Authorization": f"Bearer {AuthService.create_access_token(user)}"}


@pytest.fixture(scope="function")
def book(client: TestClient, auth_headers):
    response = client.post(
        "/api/books",
        json={"title": "The Long Road", "genre": "fantasy", "description": "A quest"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]["book"]


@pytest.fixture(scope="function")
def chapters_url(book):
    return f"/api/chapters/books/{book['id']}/chapters"


@pytest.fixture(scope="function")
def grok_api():
    """A scripted fake API, not wired into the app."""
    return FakeGrokAPI()
