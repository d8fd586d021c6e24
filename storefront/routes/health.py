from fastapi import APIRouter, Depends

from storefront.dependencies import get_connection_registry
from storefront.services.websockets.registry import ConnectionRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(registry: ConnectionRegistry = Depends(get_connection_registry)):
    """Basic health check with the live realtime connection count"""
    return {
        "status": "healthy",
        "service": "Storefront Sales Backend",
        "connections": len(registry.active_connections),
    }
