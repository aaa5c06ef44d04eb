"""Liveness and version probes for Indaba Care deployments."""

from fastapi import APIRouter
from pydantic import BaseModel

from indaba.server.core import constant

router = APIRouter()


class HealthStatus(BaseModel):
    status: str = "ok"


class VersionInfo(BaseModel):
    version: str = constant.API_VERSION
    schema_version: str = constant.SCHEMA_VERSION


@router.get("/health", response_model=HealthStatus, summary="Liveness probe")
async def health_check() -> HealthStatus:
    # No database access: liveness only.
    return HealthStatus()


@router.get("/version", response_model=VersionInfo, summary="API and schema version")
async def version() -> VersionInfo:
    """Mobile clients compare ``schema_version`` before replaying their offline queue."""
    return VersionInfo()
