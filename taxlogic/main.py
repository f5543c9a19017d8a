"""FastAPI application entry point with lifespan management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taxlogic.agents.personal_tax.agent import PersonalTaxAgent
from taxlogic.agents.personal_tax.output import MarkdownNotesExporter, WorksheetExporter
from taxlogic.api.health import router as health_router
from taxlogic.api.interviews import router as interviews_router
from taxlogic.api.middleware import RequestContextMiddleware
from taxlogic.api.rules import router as rules_router
from taxlogic.core.config import settings
from taxlogic.core.logging import configure_logging, get_logger
from taxlogic.interview.state_machine import InterviewStateMachine
from taxlogic.interview.store import SessionStore
from taxlogic.tax.registry import RulePackRegistry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Create the rule pack registry and report each year's state
        - Create the session store and the personal tax agent
    """
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    app.state.registry = RulePackRegistry()
    for status in app.state.registry.statuses():
        if status.is_ok:
            logger.info("rule_pack_ready", tax_year=status.year)
        else:
            logger.warning(
                "rule_pack_not_ready",
                tax_year=status.year,
                state=status.state.value,
                reason=status.message,
            )

    machine = InterviewStateMachine()
    app.state.store = SessionStore(machine=machine)
    app.state.agent = PersonalTaxAgent(
        app.state.registry,
        machine=machine,
        exporters=[MarkdownNotesExporter(), WorksheetExporter()],
    )

    yield

    logger.info("Shutting down application", sessions=len(app.state.store))


app = FastAPI(
    title="TaxLogic",
    description="Guided employee tax assessment with yearly verified rule packs",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(interviews_router)
app.include_router(rules_router)
