"""Shared fixtures for AnalogyAI tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from analogyai.auth import HeaderIdentityResolver, get_identity_resolver
from analogyai.config import Settings
from analogyai.main import app, get_llm
from analogyai.schemas import AnalogyContent, UpdateProfileIn, UserUpsert
from analogyai.storage import MemoryStorage, get_storage

ANALOGY_TEXT = (
    "### Main Concept\n\nThink of it as a **no-look pass**.\n\n"
    "### How It Works\n\nThe **passer** and the **receiver** move as one."
)
EXAMPLE_TEXT = (
    "### Real-World Example\n\nTwo **polarized photons** measured far apart.\n\n"
    "Their results are **correlated**."
)


@pytest.fixture
def mock_settings():
    """Create a settings object for an OpenAI-backed service."""
    return Settings(
        PROVIDER="openai",
        OPENAI_API_KEY="test-key",
        ANTHROPIC_API_KEY=None,
        MODEL_NAME="gpt-4o",
        TEMPERATURE=0.8,
        REGENERATE_TEMPERATURE=0.9,
        TIMEOUT_SEC=45,
        MAX_TOKENS=1500,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def fake_llm():
    """Stand-in for AnalogyLLM returning a fixed, well-formatted reply."""
    llm = MagicMock()
    llm.model_name = "gpt-4o"
    content = AnalogyContent(analogy=ANALOGY_TEXT, example=EXAMPLE_TEXT)
    llm.agenerate_analogy = AsyncMock(return_value=content)
    llm.aregenerate_analogy = AsyncMock(return_value=content)
    return llm


@pytest.fixture
def make_user(storage):
    def _make_user(user_id="user-1", email=None, **profile):
        user = storage.upsert_user(UserUpsert(id=user_id, email=email or f"{user_id}@example.com"))
        if profile:
            user = storage.update_user(user_id, UpdateProfileIn(**profile))
        return user
    return _make_user


@pytest.fixture
def client(storage, fake_llm):
    """TestClient with in-memory storage, a fake LLM and header-based identity."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_llm] = lambda: fake_llm
    app.dependency_overrides[get_identity_resolver] = lambda: HeaderIdentityResolver()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_user():
    """Build headers identifying the caller to HeaderIdentityResolver."""
    def _as_user(user_id, email=None):
        headers = {"X-Goog-Authenticated-User-Id": f"accounts.google.com:{user_id}"}
        if email:
            headers["X-Goog-Authenticated-User-Email"] = f"accounts.google.com:{email}"
        return headers
    return _as_user
