"""
EQMS Helpdesk - Main Application
================================

Enterprise Query Management System: an SLA-driven helpdesk where tickets
escalate through support tiers when their SBU's allotted time runs out.

Modules:
- Tickets: raising, triaging, assigning and resolving tickets
- SLA: per-SBU policy tables and the server-owned escalation sweep
- Organization: SBUs, tier rosters and user profiles
- Notifications: status e-mails through an SMTP relay

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and the status state machine
- Infrastructure: Database, SMTP, policy file watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from eqms.config import Settings, get_settings
from eqms.core import ApplicationException

# Infrastructure
from eqms.infrastructure.database import Database
from eqms.dependencies import build_sweeper

# Notifications
from eqms.notifications.application.services import EmailDispatcher
from eqms.notifications.infrastructure.external import SMTPMailer

# SLA Module - External services
from eqms.sla.infrastructure.external import EscalationPolicyManager, EscalationScheduler

# Module Routers
from eqms.notifications.interfaces import email_router
from eqms.organization.interfaces import sbu_router, tier_router, user_router
from eqms.sla.interfaces import escalation_router, sla_router
from eqms.tickets.interfaces import tickets_router

# Logging and middleware
from eqms.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    application_exception_handler,
    global_exception_handler,
    request_validation_exception_handler
)
from eqms.shared.infrastructure.logging import get_logger, setup_logging

# ORM models must be registered on the metadata before create_tables()
from eqms.organization.infrastructure import models as _organization_models  # noqa: F401
from eqms.sla.infrastructure import models as _sla_models  # noqa: F401
from eqms.tickets.infrastructure import models as _ticket_models  # noqa: F401

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (and tables, in development)
    3. Load escalation policy defaults and watch the file
    4. Start the e-mail dispatcher
    5. Start the escalation scheduler

    SHUTDOWN:
    1. Stop the escalation scheduler
    2. Stop watching the policy file
    3. Flush queued e-mails
    4. Close database connections
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting EQMS helpdesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    database = Database.from_settings(settings)
    app.state.database = database

    if settings.db_create_tables:
        # Development convenience; hosted stores own their schema
        logger.info("Creating database tables")
        await database.create_tables()

    logger.info("Loading escalation policy", extra={"path": str(settings.escalation_policy_path)})
    policy_manager = EscalationPolicyManager(settings.sla_default_warning_seconds)
    policy_manager.load(settings.escalation_policy_path)
    policy_manager.start_watching()
    app.state.policy_manager = policy_manager

    dispatcher = EmailDispatcher(SMTPMailer.from_settings(settings))
    app.state.dispatcher = dispatcher

    sweeper = build_sweeper(app.state)
    app.state.sweeper = sweeper

    scheduler: Optional[EscalationScheduler] = None
    if settings.escalation_scheduler_enabled:
        scheduler = EscalationScheduler(interval_seconds=settings.escalation_sweep_interval)

        async def escalation_sweep_job():
            """Background escalation sweep."""
            await sweeper.run()

        await scheduler.start(escalation_sweep_job)
    else:
        logger.info("Escalation scheduler disabled; use POST /api/escalations/sweep")
    app.state.scheduler = scheduler

    logger.info("EQMS helpdesk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down EQMS helpdesk")

    if scheduler:
        await scheduler.stop()

    policy_manager.stop_watching()

    await dispatcher.drain()

    await database.dispose()

    logger.info("EQMS helpdesk shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Tests and the serverless entry point pass their own Settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="EQMS Helpdesk API",
        description="""
    ## SLA-driven Enterprise Query Management System

    Tickets belong to a Strategic Business Unit (SBU). Every SBU owns an SLA
    table: minutes allotted to a ticket in each status. When the time runs
    out the server escalates the ticket one support tier.

    ---

    ### 🎫 Tickets

    - `GET /api/tickets` - Page of visible tickets (filters, search)
    - `POST /api/tickets` - Raise a ticket
    - `PATCH /api/tickets/status` - Move along the state machine
    - `POST /api/tickets/assign` | `/resolve` | `/escalate`
    - `GET /api/tickets/{id}/sla` - Escalation countdown
    - `GET /api/tickets/analytics` - Counts by priority, status, SBU and day

    ### ⏱️ SLA

    - `GET|POST|PUT|DELETE /api/sla-configs` - SLA policy table
    - `POST /api/escalations/sweep` - Run an escalation sweep now

    ### 🏢 Organization

    - `/api/sbus`, `/api/tier-assignments`, `/api/users`

    ### ✉️ Notifications

    - `POST /api/email` - Queue a ticket e-mail

    ---

    ### 🔁 Ticket lifecycle

    ```
    new ──► escalated_tier1 ──► escalated_tier2 ──► escalated_tier3
     │            │                   │                   │
     └──────► assigned ──► in_progress ──► resolved ──► closed
    ```

    *Automatic escalation moves one tier per sweep. `sla_time` is re-stamped
    from the SBU's table on every status change.*

    ---
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    # Last added runs first; the correlation id must be set before logging
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)
    app.include_router(sla_router)
    app.include_router(escalation_router)
    app.include_router(sbu_router)
    app.include_router(tier_router)
    app.include_router(user_router)
    app.include_router(email_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "database": "connected",
                            "escalation_policy": "loaded",
                            "escalation_scheduler": "running",
                            "pending_emails": 0
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Returns service health status including:
        - Database connectivity
        - Escalation policy status
        - Scheduler state
        - E-mails waiting for delivery
        """
        state = request.app.state
        checks = {
            "database": "connected",
            "escalation_policy": "loaded",
            "escalation_scheduler": "stopped",
            "pending_emails": 0
        }

        try:
            async with state.database.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Health check: database unavailable", extra={"error": str(e)})
            checks["database"] = "unavailable"

        scheduler = getattr(state, "scheduler", None)
        if scheduler is not None and scheduler.is_running:
            checks["escalation_scheduler"] = "running"
        checks["pending_emails"] = state.dispatcher.pending

        healthy = checks["database"] == "connected"
        return {
            "status": "healthy" if healthy else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"], responses={
        200: {
            "description": "API information",
            "content": {
                "application/json": {
                    "example": {
                        "service": "EQMS Helpdesk",
                        "version": "1.0.0",
                        "architecture": "Clean Architecture / Modular Monolith",
                        "docs": "/docs",
                        "health": "/health"
                    }
                }
            }
        }
    })
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "EQMS Helpdesk",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "tickets": "/api/tickets",
                "sla": "/api/sla-configs",
                "organization": ["/api/sbus", "/api/tier-assignments", "/api/users"],
                "notifications": "/api/email"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "eqms.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level.lower()
    )
