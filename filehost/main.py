from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from filehost.api import health, metrics_endpoint
from filehost.api.exception_handlers import (base_api_exception_handler,
                                             general_exception_handler,
                                             http_exception_handler,
                                             storage_exception_handler,
                                             validation_exception_handler)
from filehost.api.router import api_router
from filehost.core.config import settings
from filehost.core.exceptions import BaseAPIException
from filehost.core.storage import StorageError
from filehost.infrastructure.logging import get_logger, setup_logging
from filehost.infrastructure.middleware import (CorrelationIDMiddleware,
                                                LoggingMiddleware)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
        storage_root=str(settings.storage_root),
        max_user_storage_bytes=settings.max_user_storage_bytes,
    )

    yield

    logger.info("application_shutdown", app_name=settings.app_name)


app = FastAPI(
    title="filehost API",
    description="Per-tenant file hosting with sandboxed paths and storage quotas",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StorageError, storage_exception_handler)
app.add_exception_handler(BaseAPIException, base_api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/", response_model=Dict[str, Any])
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Per-tenant file hosting",
        "status": "running",
        "environment": settings.environment,
        "endpoints": {
            "api": settings.api_prefix,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        },
    }


# Health and metrics live at root level
app.include_router(health.router)
app.include_router(metrics_endpoint.router)

app.include_router(api_router, prefix=settings.api_prefix)
