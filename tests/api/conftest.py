"""Fixtures for API tests: an httpx client with app dependencies overridden."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taxlogic.agents.personal_tax.agent import PersonalTaxAgent
from taxlogic.agents.personal_tax.output import MarkdownNotesExporter
from taxlogic.api.deps import get_agent, get_registry, get_store
from taxlogic.interview.state_machine import InterviewStateMachine
from taxlogic.interview.store import SessionStore
from taxlogic.main import app
from taxlogic.tax.registry import RulePackRegistry


@pytest.fixture
def api_registry(registry: RulePackRegistry) -> RulePackRegistry:
    """Registry served by the API. Test classes may override this fixture."""
    return registry


@pytest.fixture
def api_agent(
    api_registry: RulePackRegistry, machine: InterviewStateMachine, tmp_path: Path
) -> PersonalTaxAgent:
    return PersonalTaxAgent(
        api_registry,
        machine=machine,
        exporters=[MarkdownNotesExporter(str(tmp_path / "output"))],
    )


@pytest_asyncio.fixture
async def api_client(
    api_registry: RulePackRegistry,
    store: SessionStore,
    api_agent: PersonalTaxAgent,
) -> AsyncGenerator[AsyncClient, None]:
    """Create API client with registry, store and agent overrides."""

    async def override_get_registry() -> RulePackRegistry:
        return api_registry

    async def override_get_store() -> SessionStore:
        return store

    async def override_get_agent() -> PersonalTaxAgent:
        return api_agent

    app.dependency_overrides[get_registry] = override_get_registry
    app.dependency_overrides[get_store] = override_get_store
    app.dependency_overrides[get_agent] = override_get_agent
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
