"""Prometheus metrics endpoint"""

from fastapi import APIRouter, HTTPException, Response, status

from filehost.core.config import settings
from filehost.infrastructure.metrics import get_metrics, get_metrics_content_type


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def get_prometheus_metrics():
    """Return metrics in Prometheus text format"""
    if not settings.metrics_enabled:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Metrics endpoint is disabled",
        )

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
