"""
Health check endpoints

- GET /api/v1/health - Basic health check
- GET /api/v1/health/dependencies - Store and AI provider status
"""
import asyncio
import time
from datetime import datetime
from typing import Dict, Optional

import httpx
from fastapi import APIRouter, status
from pydantic import BaseModel, Field
from supabase import create_client

from ticketflow.config import get_settings
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])

APP_START_TIME = time.time()
CHECK_TIMEOUT_SECONDS = 5.0


class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
    uptime_seconds: float


class DependencyStatus(BaseModel):
    name: str
    status: str
    latency_ms: Optional[float] = None
    error_message: Optional[str] = None


class DependencyHealth(BaseModel):
    overall_status: str
    dependencies: Dict[str, DependencyStatus]
    checked_at: datetime = Field(default_factory=datetime.utcnow)


async def check_store() -> DependencyStatus:
    """Check the ticket store (in-memory is always healthy)"""
    settings = get_settings()
    if not settings.use_supabase:
        return DependencyStatus(name="store", status="healthy", latency_ms=0.0)

    try:
        start = time.time()
        client = create_client(settings.supabase_url, settings.supabase_key)
        await asyncio.wait_for(
            asyncio.to_thread(
                lambda: client.table("tickets").select("id").limit(1).execute()
            ),
            timeout=CHECK_TIMEOUT_SECONDS
        )
        latency = (time.time() - start) * 1000
        return DependencyStatus(name="store", status="healthy", latency_ms=round(latency, 2))

    except asyncio.TimeoutError:
        logger.error("Supabase health check timed out")
        return DependencyStatus(
            name="store",
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:g} seconds"
        )
    except Exception as e:
        logger.error(f"Supabase health check failed: {e}")
        return DependencyStatus(name="store", status="unhealthy", error_message=str(e))


async def check_google_api() -> DependencyStatus:
    """Check Gemini API connectivity; a missing key means heuristic analysis only"""
    settings = get_settings()
    if not settings.gemini_api_key:
        return DependencyStatus(
            name="google_api",
            status="degraded",
            error_message="API key not configured"
        )

    try:
        start = time.time()
        async with httpx.AsyncClient(timeout=CHECK_TIMEOUT_SECONDS) as client:
            response = await client.get(
                "https://generativelanguage.googleapis.com/v1/models",
                params={"key": settings.gemini_api_key}
            )
            response.raise_for_status()
        latency = (time.time() - start) * 1000
        return DependencyStatus(name="google_api", status="healthy", latency_ms=round(latency, 2))

    except httpx.TimeoutException:
        logger.error("Google API health check timed out")
        return DependencyStatus(
            name="google_api",
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:g} seconds"
        )
    except httpx.HTTPStatusError as e:
        logger.error(f"Google API health check failed: {e}")
        return DependencyStatus(
            name="google_api",
            status="unhealthy",
            error_message=f"HTTP {e.response.status_code}"
        )
    except Exception as e:
        logger.error(f"Google API health check failed: {e}")
        return DependencyStatus(name="google_api", status="unhealthy", error_message=str(e))


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Store unhealthy -> "unhealthy"; any other problem -> "degraded"
    """
    store = dependencies.get("store")
    if store is not None and store.status == "unhealthy":
        return "unhealthy"

    if any(dep.status in ("degraded", "unhealthy") for dep in dependencies.values()):
        return "degraded"

    return "healthy"


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def basic_health_check() -> HealthResponse:
    """Always 200; does not touch external dependencies"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        uptime_seconds=round(time.time() - APP_START_TIME, 2)
    )


@router.get("/dependencies", response_model=DependencyHealth, status_code=status.HTTP_200_OK)
async def dependency_health_check() -> DependencyHealth:
    store, google_api = await asyncio.gather(check_store(), check_google_api())
    dependencies = {"store": store, "google_api": google_api}

    unhealthy = [name for name, dep in dependencies.items() if dep.status == "unhealthy"]
    if unhealthy:
        logger.warning(f"Unhealthy dependencies: {', '.join(unhealthy)}")

    return DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies,
        checked_at=datetime.utcnow()
    )
