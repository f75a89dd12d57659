"""
Campus Delivery: Health endpoint
"""
import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from campus_delivery.api.deps import get_app_settings
from campus_delivery.core.config import Settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_app_settings)):
    clients = request.app.state.clients
    deps: dict[str, str] = {}
    healthy = True

    # Check Redis
    try:
        await asyncio.wait_for(clients.redis.ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["redis"] = "ok"
    except Exception as e:
        deps["redis"] = f"error: {str(e)[:100]}"
        healthy = False

    # Check backend (shallow)
    try:
        status_code = await asyncio.wait_for(clients.backend.ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["backend"] = "ok" if status_code == 200 else f"degraded: {status_code}"
        if status_code != 200:
            healthy = False
    except Exception as e:
        deps["backend"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "dependencies": deps,
        },
        status_code=200 if healthy else 503,
    )
