"""
Test configuration and fixtures.

Provides:
- In-memory SQLite session (fresh schema per test)
- Companies and customer/agent/admin profiles
- Access token minting for authenticated tests
- HTTPX AsyncClient with CSRF header and dependency overrides for the
  database, attachment storage and AI assistant
"""
import json
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from autocrm.core.deps import get_ai_assistant, get_db, get_storage
from autocrm.core.security import create_access_token
from autocrm.db.base import Base
from autocrm.db.enums import UserRole
from autocrm.db.models import Company, Profile
from autocrm.main import app
from autocrm.services.ai_assist_service import AIAssistant
from autocrm.services.ai_provider import AIProvider, ChatMessage, ChatResponse
from autocrm.services.ai_tracing import NullTracer
from autocrm.services.storage_service import LocalObjectStorage


PRIORITY_JSON = json.dumps(
    {
        "priority": "high",
        "confidence": 0.9,
        "reasoning": "Customer is blocked",
        "factors": {"urgency": 9, "impact": 7, "scope": 5, "businessValue": 8},
        "details": ["Urgency: blocked", "Impact: one user"],
    }
)


# =============================================================================
# AI stubs
# =============================================================================

class StubProvider(AIProvider):
    """Answers from a callable; records every prompt it receives."""

    default_model = "stub-model"

    def __init__(self, reply: Callable[[str], str] | None = None):
        self.reply = reply or default_reply
        self.prompts: list[str] = []

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        prompt = messages[-1].content
        self.prompts.append(prompt)
        content = self.reply(prompt)
        return ChatResponse(
            content=content,
            prompt_tokens=10,
            completion_tokens=20,
            total_tokens=30,
            model=model or self.default_model,
        )

    async def validate_key(self) -> bool:
        return True


def default_reply(prompt: str) -> str:
    if "Analyze this ticket's priority" in prompt:
        return PRIORITY_JSON
    if "summary of this support ticket thread" in prompt:
        return "Core issue: login fails. Current status: investigating."
    return "Thank you for reaching out. We will help you resolve this."


@dataclass
class RecordingTracer:
    """Tracer that keeps every call in memory."""

    created: list[tuple[str, dict]] = field(default_factory=list)
    updates: list[dict] = field(default_factory=list)

    async def create_run(self, name, inputs, start_time):
        self.created.append((name, inputs))
        return f"run-{len(self.created)}"

    async def update_run(self, run_id, **fields):
        self.updates.append({"run_id": run_id, **fields})


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def assistant(stub_provider: StubProvider) -> AIAssistant:
    return AIAssistant(stub_provider, NullTracer())


@pytest.fixture
def recording_tracer() -> RecordingTracer:
    return RecordingTracer()


@pytest.fixture
def make_assistant():
    """Build (assistant, provider) with a custom reply function and tracer."""
    def factory(reply: Callable[[str], str] | None = None, tracer=None):
        provider = StubProvider(reply)
        return AIAssistant(provider, tracer or NullTracer()), provider

    return factory


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    StaticPool keeps one connection so the schema survives across the
    worker threads FastAPI runs sync endpoints in.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(str(tmp_path), "attachments")


def _make_company(db: Session, name: str) -> Company:
    company = Company(name=name)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def _make_profile(db: Session, role: UserRole, company: Company | None) -> Profile:
    profile = Profile(
        name=f"{role.value.title()} User",
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        role=role,
        company_id=company.id if company else None,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def company(db: Session) -> Company:
    return _make_company(db, "Acme Corp")


@pytest.fixture
def other_company(db: Session) -> Company:
    return _make_company(db, "Globex")


@pytest.fixture
def customer(db: Session, company: Company) -> Profile:
    return _make_profile(db, UserRole.CUSTOMER, company)


@pytest.fixture
def agent(db: Session, company: Company) -> Profile:
    return _make_profile(db, UserRole.AGENT, company)


@pytest.fixture
def admin(db: Session, company: Company) -> Profile:
    return _make_profile(db, UserRole.ADMIN, company)


@pytest.fixture
def make_profile(db: Session):
    def factory(role: UserRole, company: Company | None = None) -> Profile:
        return _make_profile(db, role, company)

    return factory


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(
    db: Session, storage: LocalObjectStorage, assistant: AIAssistant
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient with CSRF header and overridden dependencies.

    Authenticate a request with `headers=auth_headers(profile)`.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ai_assistant] = lambda: assistant

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for a profile."""
    def build(profile: Profile) -> dict[str, str]:
        token = create_access_token(profile.id, email=profile.email)
        return {"Authorization": f"Bearer {token}"}

    return build
