"""
ASGI entry point for the Indaba Care API (``uvicorn indaba.server.main:app``).

``create_app`` wires CORS, request timing, the error handlers and every v1
router; startup creates missing tables and seeds the milestone catalogue.
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indaba.core.logging_config import get_logger, setup_logging
from indaba.core.monitoring import initialize_logfire

from .api.v1 import (
    admin,
    auth,
    health,
    messages,
    nanny,
    observations,
    parent,
    sync,
    users,
)
from .core import constant
from .core.config import settings
from .core.database import init_db
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware

setup_logging()
logger = get_logger(__name__)

# (router, path under /api/v1, OpenAPI tag)
V1_ROUTERS: list[tuple[APIRouter, str, str]] = [
    (auth.router, "/auth", "auth"),
    (users.router, "/users/me", "users"),
    (observations.router, "/observations", "observations"),
    (messages.router, "/messages", "messages"),
    (nanny.router, "/nanny", "nanny"),
    (parent.router, "/parent", "parent"),
    (admin.router, "/admin", "admin"),
    (sync.router, "/sync", "sync"),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up Indaba Care Server...")
    try:
        await init_db()
    except Exception as e:
        # Startup continues; /health stays up while the database is down.
        logger.error(f"Database initialization failed: {e}", exc_info=True)
    else:
        logger.info("Database initialized successfully")

    yield

    logger.info("Shutting down Indaba Care Server...")


def create_app() -> FastAPI:
    application = FastAPI(
        title=constant.PROJECT_NAME,
        description=(
            "Childcare coordination between nannies, parents and administrators: observations, "
            "messaging, hours and shifts, milestones, moderation, reports and offline sync."
        ),
        version=constant.API_VERSION,
        openapi_url=f"{constant.API_V1_STR}/openapi.json",
        docs_url=f"{constant.API_V1_STR}/docs",
        redoc_url=f"{constant.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    cors = settings.cors
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )
    application.add_middleware(LogfireMiddleware)
    setup_exception_handlers(application)

    application.include_router(health.router, tags=["health"])
    for router, path, tag in V1_ROUTERS:
        application.include_router(router, prefix=f"{constant.API_V1_STR}{path}", tags=[tag])

    initialize_logfire(application)
    return application


app = create_app()
