"""
Lorebook API
============

FastAPI application entry point.
Configures middleware, routes, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from lorebook.api.config import settings
from lorebook.api.middleware.exceptions import register_exception_handlers
from lorebook.api.middleware.request_id import RequestIdMiddleware
from lorebook.api.routes import health, injection, keywords, rules
from lorebook.shared.kernel.runtime import configure_settings, is_configured
from lorebook.shared.observability.logging import configure_logging

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

# Routes and services read settings through the runtime kernel
configure_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")
    # Keep settings an embedding application configured before startup
    if not is_configured():
        configure_settings(settings)

    from lorebook.core.activation.service import get_injection_service

    service = get_injection_service()
    logger.info(
        f"Injection engine ready: budget={service.token_budget}, "
        f"secondary keywords={service.engine.secondary_keyword_mode}"
    )

    yield

    logger.info("Shutting down...")


# =============================================================================
# Create FastAPI Application
# =============================================================================

app = FastAPI(
    title="Lorebook API",
    description="""
    **Lorebook: keyword-triggered knowledge injection for interactive fiction**

    Authors maintain rules (lore, constraints, world facts). Each turn the
    engine scans recent player input, narration and memory notes, decides
    which rules fire, and returns an injection block that fits a token budget.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "health", "description": "Liveness probe"},
        {"name": "rules", "description": "Rule authoring, import and export"},
        {"name": "injection", "description": "Per-turn rule evaluation"},
        {"name": "keywords", "description": "Keyword field parsing and formatting"},
    ],
    lifespan=lifespan,
)

# =============================================================================
# Register Middleware
# =============================================================================

app.add_middleware(RequestIdMiddleware)

# =============================================================================
# Register Exception Handlers
# =============================================================================

register_exception_handlers(app)

# =============================================================================
# Register Routes
# =============================================================================

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(health.router)
v1_router.include_router(rules.router)
v1_router.include_router(injection.router)
v1_router.include_router(keywords.router)

# Also expose health check at root /health for infrastructure probes
app.include_router(health.router)

app.include_router(v1_router)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - points at the docs."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }
