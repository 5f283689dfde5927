"""Trailseal Audit API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from pydantic import BaseModel

from trailseal.api.config import Settings

settings = Settings()

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger("trailseal.api")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title=settings.api_title,
    description="Tamper-evident audit trail recording and hash chain verification.",
    version=settings.api_version,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

app.state.settings = settings

from trailseal.api.audit import router as audit_router

app.include_router(audit_router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.api_version,
        environment=settings.environment,
    )


logger.info(
    "Trailseal API configured: environment=%s storage=%s",
    settings.environment,
    settings.audit_storage_type,
)
