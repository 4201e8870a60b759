from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clubhouse.api.accounts import router as accounts_router
from clubhouse.api.bookings import router as bookings_router
from clubhouse.api.errors import register_exception_handlers
from clubhouse.api.health import router as health_router
from clubhouse.api.metrics_endpoint import router as metrics_router
from clubhouse.api.organizations import router as organizations_router
from clubhouse.api.resources import router as resources_router
from clubhouse.api.sessions import router as sessions_router
from clubhouse.core.config import SETTINGS
from clubhouse.core.logging import setup_logging
from clubhouse.db.engine import lifespan_db
from clubhouse.db.redis import lifespan_redis
from clubhouse.middleware.metrics import MetricsMiddleware
from clubhouse.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="clubhouse",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(sessions_router)
app.include_router(accounts_router)
app.include_router(organizations_router)
app.include_router(resources_router)
app.include_router(bookings_router)

logger.info(
    "clubhouse started  env=%s log_level=%s port=%d store=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgresql" if SETTINGS.database_url else "memory",
    "on" if SETTINGS.is_dev else "off",
)
