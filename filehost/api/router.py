from fastapi import APIRouter

from filehost import __version__
from filehost.api.routes import files_router, storage_router

api_router = APIRouter()

api_router.include_router(files_router)
api_router.include_router(storage_router)


@api_router.get("/version")
async def get_version():
    return {"version": __version__}
