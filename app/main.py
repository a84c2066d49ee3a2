from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.admin import router as admin_router
from app.api.assessments import router as assessments_router
from app.api.badges import router as badges_router
from app.api.blocks import router as blocks_router
from app.api.certificates import router as certificates_router
from app.api.courses import router as courses_router
from app.api.dependencies import memory_repo
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.notifications import router as notifications_router
from app.api.progress import router as progress_router
from app.api.users import router as users_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import engine, lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.services import badge_service

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: Redis first, then the database.
    async with lifespan_db():
        async with lifespan_redis():
            if engine is None:
                # Postgres deployments seed through scripts/seed_badges.py.
                await badge_service.seed_default_badges(memory_repo)
            yield


app = FastAPI(
    title="vx-academy",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler,
# so every metric and log line already has a request ID.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(admin_router)
app.include_router(assessments_router)
app.include_router(badges_router)
app.include_router(blocks_router)
app.include_router(certificates_router)
app.include_router(courses_router)
app.include_router(notifications_router)
app.include_router(progress_router)
app.include_router(users_router)

logger.info(
    "vx-academy started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
