"""Prometheus metrics for storage operations"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Info,
    generate_latest,
)

from filehost.core.config import settings

metrics_registry = REGISTRY

service_info = Info(
    "filehost_service",
    "File hosting service information",
    registry=metrics_registry
)

service_info.info({
    "version": settings.app_version,
    "environment": settings.environment,
    "service": settings.app_name
})

storage_operations_total = Counter(
    "filehost_storage_operations_total",
    "Storage operations by operation and outcome",
    ["operation", "status"],
    registry=metrics_registry
)

quota_rejections_total = Counter(
    "filehost_quota_rejections_total",
    "Writes rejected because the tenant quota would be exceeded",
    registry=metrics_registry
)

sandbox_violations_total = Counter(
    "filehost_sandbox_violations_total",
    "Paths rejected because they resolved outside a tenant root",
    registry=metrics_registry
)

bytes_written_total = Counter(
    "filehost_bytes_written_total",
    "Bytes written to tenant storage",
    registry=metrics_registry
)

health_check_status = Gauge(
    "filehost_health_check_status",
    "Health check status (1 = healthy, 0 = unhealthy)",
    ["check_type"],
    registry=metrics_registry
)


def track_operation(operation: str, status: str) -> None:
    storage_operations_total.labels(operation=operation, status=status).inc()


def get_metrics() -> bytes:
    return generate_latest(metrics_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
