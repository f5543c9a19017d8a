"""FastAPI dependency injection for the registry, session store and agent."""

from fastapi import Request

from taxlogic.agents.personal_tax.agent import PersonalTaxAgent
from taxlogic.interview.store import SessionStore
from taxlogic.tax.registry import RulePackRegistry


async def get_registry(request: Request) -> RulePackRegistry:
    """Get the rule pack registry from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        Shared RulePackRegistry.
    """
    return request.app.state.registry


async def get_store(request: Request) -> SessionStore:
    """Get the interview session store from app state."""
    return request.app.state.store


async def get_agent(request: Request) -> PersonalTaxAgent:
    """Get the personal tax agent from app state."""
    return request.app.state.agent
