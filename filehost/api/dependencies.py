from functools import lru_cache

from filehost.core.services.file_service import FileService


@lru_cache()
def get_file_service() -> FileService:
    return FileService()
