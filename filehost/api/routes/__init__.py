from filehost.api.routes.files import router as files_router
from filehost.api.routes.storage import router as storage_router

__all__ = ["files_router", "storage_router"]
