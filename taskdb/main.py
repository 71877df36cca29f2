"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskdb.api.v1 import tasks
from taskdb.config import settings
from taskdb.core.logging_setup import setup_logging
from taskdb.middleware.audit import AuditMiddleware
from taskdb.middleware.metrics import setup_metrics
from taskdb.schemas.task import HealthResponse
from taskdb.services.persistence_service import persistence_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    persistence_service.bootstrap_store(settings.SEED_TASKS_DB_DIR)
    logger.info("Serving task store at %s", persistence_service.root)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Audit middleware
app.add_middleware(AuditMiddleware)

setup_metrics(app)

# Include routers
app.include_router(tasks.router, prefix=f"{settings.API_PREFIX}/tasks", tags=["tasks"])


@app.get(f"{settings.API_PREFIX}/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(ok=True)
