from fastapi import APIRouter, Depends

from filehost.api.auth.dependencies import get_current_tenant
from filehost.api.dependencies import get_file_service
from filehost.api.models.files import DiskUsageResponse
from filehost.core.services.file_service import FileService

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/usage", response_model=DiskUsageResponse, summary="Storage usage of the caller")
async def get_storage_usage(
    tenant_id: str = Depends(get_current_tenant),
    service: FileService = Depends(get_file_service),
):
    usage = await service.usage(tenant_id)
    return DiskUsageResponse.from_usage(usage)
