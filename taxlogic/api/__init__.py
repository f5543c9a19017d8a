"""API module exports."""

from taxlogic.api.deps import get_agent, get_registry, get_store
from taxlogic.api.health import router as health_router
from taxlogic.api.interviews import router as interviews_router
from taxlogic.api.rules import router as rules_router

__all__ = [
    "get_agent",
    "get_registry",
    "get_store",
    "health_router",
    "interviews_router",
    "rules_router",
]
