from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .core.config import get_settings
from .core.responses import install_error_handlers, ok
from .db import async_session_maker, close_db, init_db
from .routers import admin, admin_events, auth, events, users
from .services.auth_service import ensure_bootstrap_admin

settings = get_settings()
logger = logging.getLogger("ecotour_svc")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    await init_db()
    async with async_session_maker() as session:
        await ensure_bootstrap_admin(session)
    logger.info("ecotour-svc started")
    yield
    await close_db()

app = FastAPI(lifespan=lifespan, title="ecotour-svc")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# routers
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(events.router, prefix="/api")
app.include_router(admin_events.router, prefix="/api")

@app.get("/health")
async def health():
    return ok(
        {"status": "ok", "service": "ecotour-svc", "timestamp": datetime.now(timezone.utc)},
        "Eco-tourism API is running",
    )

Instrumentator().instrument(app).expose(app)
