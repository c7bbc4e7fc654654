import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deskguard.config import settings
from deskguard.database import create_tables, engine
from deskguard.logging_config import setup_logger
from deskguard.middleware.exceptions import register_exception_handlers
from deskguard.routers import access, health
from deskguard.utils.cache import close_redis

setup_logger()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; release Redis and DB pools on shutdown."""
    await create_tables()
    logger.info("DeskGuard started")
    try:
        yield
    finally:
        await close_redis()
        await engine.dispose()
        logger.info("DeskGuard stopped")


app = FastAPI(
    title="DeskGuard",
    description="Role & permission authorization engine for the IT-asset / helpdesk dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(access.router, prefix="/api/access", tags=["access"])
