from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizsuite.api.health import router as health_router
from bizsuite.api.metrics_endpoint import router as metrics_router
from bizsuite.api.navigation import router as navigation_router
from bizsuite.api.notifications import router as notifications_router
from bizsuite.api.orgs import router as orgs_router
from bizsuite.api.platform import router as platform_router
from bizsuite.api.sessions import router as sessions_router
from bizsuite.api.subscriptions import router as subscriptions_router
from bizsuite.core.config import SETTINGS
from bizsuite.core.logging import setup_logging
from bizsuite.db.engine import lifespan_db
from bizsuite.db.redis import lifespan_redis
from bizsuite.middleware.metrics import MetricsMiddleware
from bizsuite.middleware.request_context import (
    RequestContextMiddleware,
    install_context_filter,
)

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
# setup_logging replaces the root handler; re-attach the context filter.
install_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="bizsuite",
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

# Last added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(orgs_router)
app.include_router(sessions_router)
app.include_router(subscriptions_router)
app.include_router(navigation_router)
app.include_router(notifications_router)
app.include_router(platform_router)

logger.info(
    "bizsuite started  env=%s log_level=%s port=%d dev_mode=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.dev_mode else "off",
)
