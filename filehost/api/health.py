"""Health and readiness check endpoints"""

import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import psutil
from fastapi import APIRouter, HTTPException, status

from filehost.core.config import settings
from filehost.infrastructure.logging import get_logger
from filehost.infrastructure.metrics import health_check_status

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class HealthChecker:
    """Service health checking utilities"""

    def __init__(self):
        self.start_time = time.time()

    def check_storage_root(self) -> tuple[bool, str]:
        """Check that the storage root exists and is writable"""
        base_path = Path(settings.storage_root)
        if not base_path.is_dir():
            return False, "Storage root does not exist"

        probe = base_path / f".health_check_{os.getpid()}"
        try:
            probe.touch()
            probe.unlink()
        except OSError as e:
            return False, f"Cannot write to storage root: {e}"

        return True, "Storage root is writable"

    def check_disk_space(self, min_free_gb: float = 1.0) -> tuple[bool, str]:
        try:
            usage = psutil.disk_usage(str(settings.storage_root))
        except OSError as e:
            return False, f"Disk space check failed: {e}"

        free_gb = usage.free / (1024 ** 3)
        if free_gb < min_free_gb:
            return False, f"Low disk space: {free_gb:.2f} GB free"

        return True, f"Disk space OK: {free_gb:.2f} GB free"

    def check_memory(self, max_usage_percent: float = 90.0) -> tuple[bool, str]:
        memory = psutil.virtual_memory()

        if memory.percent > max_usage_percent:
            return False, f"High memory usage: {memory.percent:.1f}%"

        return True, f"Memory OK: {memory.percent:.1f}% used"

    def get_uptime(self) -> float:
        """Get service uptime in seconds"""
        return time.time() - self.start_time


health_checker = HealthChecker()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint

    Returns 200 if service is alive, regardless of dependency status
    """
    response = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime_seconds": health_checker.get_uptime(),
    }

    health_check_status.labels(check_type="liveness").set(1)
    logger.debug("health_check", **response)

    return response


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """
    Readiness check endpoint

    Only the storage root is critical; disk space and memory are warnings.
    Returns 503 when a critical check fails.
    """
    storage_healthy, storage_message = health_checker.check_storage_root()
    disk_healthy, disk_message = health_checker.check_disk_space()
    mem_healthy, mem_message = health_checker.check_memory()

    checks = {
        "storage_root": {"healthy": storage_healthy, "message": storage_message},
        "disk_space": {
            "healthy": disk_healthy,
            "message": disk_message,
            "warning": not disk_healthy,
        },
        "memory": {
            "healthy": mem_healthy,
            "message": mem_message,
            "warning": not mem_healthy,
        },
    }

    response = {
        "status": "ready" if storage_healthy else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "uptime_seconds": health_checker.get_uptime(),
        "checks": checks,
    }

    health_check_status.labels(check_type="readiness").set(1 if storage_healthy else 0)

    if not storage_healthy:
        logger.warning("readiness_check_failed", **response)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)

    return response
