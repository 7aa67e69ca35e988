"""Shared test fixtures for backend tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from casedesk.api.deps import get_audit_service, get_case_manager
from casedesk.auth.context import RequestContext
from casedesk.auth.roles import Role
from casedesk.config import Settings
from casedesk.main import app
from casedesk.services.audit_service import AuditService
from casedesk.services.case_manager import CaseManager
from casedesk.services.case_store import InMemoryCaseStore

ORG_ID = "0b6d4a4e-7d35-4c4f-9f0e-3a1f2b7c9d10"
OTHER_ORG_ID = "5e2f8c11-2a9b-4d7e-8c36-9b0a1d2e3f44"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment="test", log_format="text")


@pytest.fixture
def audit() -> AuditService:
    return AuditService()


@pytest.fixture
def store() -> InMemoryCaseStore:
    return InMemoryCaseStore()


@pytest.fixture
def manager(store: InMemoryCaseStore, audit: AuditService, test_settings: Settings) -> CaseManager:
    return CaseManager(store, audit, test_settings)


def make_ctx(role: Role, org_id: str = ORG_ID, user_id: str | None = None) -> RequestContext:
    return RequestContext(org_id=org_id, user_id=user_id or f"{role.value.lower()}-user", role=role)


def identity_headers(role: str, org_id: str = ORG_ID, user_id: str = "user-1") -> dict:
    return {"X-Org-Id": org_id, "X-User-Id": user_id, "X-Role": role}


@pytest_asyncio.fixture
async def http_client(
    manager: CaseManager, audit: AuditService,
) -> AsyncGenerator[AsyncClient, None]:
    """Client without identity headers, wired to this test's services."""
    app.dependency_overrides[get_case_manager] = lambda: manager
    app.dependency_overrides[get_audit_service] = lambda: audit
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

