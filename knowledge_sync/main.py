from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from knowledge_sync.api.router import api_router
from knowledge_sync.api.routers.health import router as health_router
from knowledge_sync.core.logging import configure_logging
from knowledge_sync.core.settings import get_settings
from knowledge_sync.dependency_injection import build_container
from knowledge_sync.services.contracts import KnowledgeClientProtocol, OrphanLedgerProtocol

settings = get_settings()
configure_logging(settings.effective_log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("starting knowledge sync service", extra={"app_env": settings.app_env})

    container = build_container(settings)
    await container.resolve(OrphanLedgerProtocol).ping()
    logger.info("orphan ledger connection initialized")

    app.state.settings = settings
    app.state.container = container

    try:
        yield
    finally:
        await container.resolve(KnowledgeClientProtocol).close()
        await container.resolve(OrphanLedgerProtocol).close()
        logger.info("knowledge sync service shutdown complete")


app = FastAPI(
    title="Knowledge Sync Service",
    version="0.1.0",
    docs_url="/docs" if settings.enable_swagger else None,
    redoc_url="/redoc" if settings.enable_swagger else None,
    openapi_url="/openapi.json" if settings.enable_swagger else None,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(api_router, prefix="/api")
