"""
Health check endpoint.
Verifies key-value store connectivity and relay configuration.
"""
from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError

from mediarelay.state import AppServices, get_services

router = APIRouter()


@router.get("")
async def health_check(services: AppServices = Depends(get_services)):
    """
    Health check endpoint.
    An unconfigured store is reported but not fatal; an unreachable one is.
    """
    health_status = {
        "status": "healthy",
        "store": "unknown",
        "relay": "configured" if services.relay.is_configured else "not_configured",
    }

    if not services.store.is_configured:
        health_status["store"] = "not_configured"
    else:
        try:
            await services.store.ping()
            health_status["store"] = "connected"
        except (RedisError, OSError) as e:
            health_status["store"] = f"error: {str(e)}"
            health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
