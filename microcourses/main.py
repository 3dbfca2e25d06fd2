from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from microcourses.api.certificates import router as certificates_router
from microcourses.api.enrollments import router as enrollments_router
from microcourses.api.errors import register_exception_handlers
from microcourses.api.health import router as health_router
from microcourses.api.metrics_endpoint import router as metrics_router
from microcourses.api.progress import router as progress_router
from microcourses.core.config import SETTINGS
from microcourses.core.logging import setup_logging
from microcourses.db.engine import lifespan_db
from microcourses.db.redis import lifespan_redis
from microcourses.db.seed import seed_demo_catalog
from microcourses.middleware.metrics import MetricsMiddleware
from microcourses.middleware.request_context import RequestContextMiddleware
from microcourses.repos import store

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order: Redis first, then the DB.
    async with lifespan_db():
        async with lifespan_redis():
            if SETTINGS.is_dev and isinstance(
                store.store_provider, store.InMemoryStoreProvider
            ):
                await seed_demo_catalog(store.store_provider)
            yield


app = FastAPI(
    title="microcourses-progress",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler,
# so metrics and every handler log line already carry the request ID.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(enrollments_router)
app.include_router(certificates_router)

logger.info(
    "microcourses-progress started  env=%s log_level=%s port=%d issuance=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.certificate_issuance,
    "on" if SETTINGS.is_dev else "off",
)
