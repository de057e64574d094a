import os
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple, Union

from filehost.core.config import settings
from filehost.core.storage import (
    BinaryContent,
    ContentAccessor,
    DirectoryTree,
    DiskUsage,
    FileTooLargeError,
    InvalidOperationError,
    InvalidPathError,
    Node,
    NodeExistsError,
    NodeNotFoundError,
    NotTextError,
    PathResolver,
    QuotaTracker,
    StorageError,
)
from filehost.core.storage.mime import DEFAULT_TEXT_TYPE, guess_mime_type, is_binary_mime
from filehost.infrastructure.logging import get_logger
from filehost.infrastructure.metrics import bytes_written_total, track_operation

logger = get_logger(__name__)


@asynccontextmanager
async def _track_outcome(operation: str):
    try:
        yield
    except StorageError:
        track_operation(operation, "rejected")
        raise
    except Exception:
        track_operation(operation, "error")
        raise
    else:
        track_operation(operation, "success")


class FileService:
    """Tenant file operations: resolve the path, check quota, then mutate"""

    def __init__(
        self,
        storage_root: Optional[Path] = None,
        max_user_storage_bytes: Optional[int] = None,
        max_file_size_bytes: Optional[int] = None,
    ):
        self.resolver = PathResolver(storage_root or settings.storage_root)
        self.tree = DirectoryTree()
        self.content = ContentAccessor()
        self.quota = QuotaTracker(
            self.resolver,
            self.tree,
            max_user_storage_bytes
            if max_user_storage_bytes is not None
            else settings.max_user_storage_bytes,
        )
        self.max_file_size_bytes = (
            max_file_size_bytes
            if max_file_size_bytes is not None
            else settings.max_upload_size_bytes
        )

    def resolve_path(self, tenant_id: str, sub_path: str = "") -> Path:
        return self.resolver.resolve(tenant_id, sub_path)

    def relative_path(self, tenant_id: str, path: Path) -> str:
        return self.resolver.relative_path(tenant_id, path)

    def _is_root(self, tenant_id: str, path: Path) -> bool:
        return path == self.resolver.tenant_root(tenant_id)

    async def list_directory(self, tenant_id: str, sub_path: str = "") -> Tuple[Path, List[Node]]:
        """List a directory, 404 when the path is not one"""
        async with self._tracked("list", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)

            if not await self.tree.is_directory(path):
                raise NodeNotFoundError(sub_path or "/")

            entries = await self.tree.list_directory(path)

        logger.info("directory_listed", tenant_id=tenant_id, path=sub_path, count=len(entries))
        return path, entries

    async def read_text(self, tenant_id: str, sub_path: str) -> str:
        async with self._tracked("read_text", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)
            await self._require_file(path, sub_path)
            return await self.content.read_text(path)

    async def read_binary(self, tenant_id: str, sub_path: str) -> BinaryContent:
        async with self._tracked("read_binary", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)
            await self._require_file(path, sub_path)
            return await self.content.read_binary(path)

    async def write_file(
        self,
        tenant_id: str,
        sub_path: str,
        content: Union[str, bytes],
        overwrite: bool = True,
    ) -> Tuple[Path, int]:
        """
        Write a file after checking its size and the tenant quota

        Overwrites are charged by the size difference against the existing
        file, so edits that shrink or keep the size always succeed.

        Returns:
            Tuple of (resolved path, bytes written)
        """
        async with self._tracked("write", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)

            if self._is_root(tenant_id, path) or await self.tree.is_directory(path):
                raise InvalidOperationError(sub_path or "/", "Cannot write to a directory")

            data = self.content.encode(content)
            if len(data) > self.max_file_size_bytes:
                raise FileTooLargeError(len(data), self.max_file_size_bytes)

            if not overwrite and await self.tree.exists(path):
                raise NodeExistsError(sub_path)

            usage = await self.quota.check_write(tenant_id, path, len(data))
            await self.content.write(path, data)

        bytes_written_total.inc(len(data))
        logger.info(
            "file_written",
            tenant_id=tenant_id,
            path=sub_path,
            size=len(data),
            used_before=usage.used,
        )
        return path, len(data)

    async def update_text(
        self, tenant_id: str, sub_path: str, content: Union[str, bytes]
    ) -> Tuple[Path, int]:
        """Replace a text file in place; image types are refused like on read"""
        mime_type = guess_mime_type(sub_path, DEFAULT_TEXT_TYPE)
        if is_binary_mime(mime_type):
            track_operation("write", "rejected")
            raise NotTextError(sub_path, mime_type)

        return await self.write_file(tenant_id, sub_path, content)

    async def upload(
        self, tenant_id: str, directory: str, filename: str, data: bytes
    ) -> Tuple[str, Path, int]:
        """
        Store an uploaded file under directory

        Returns:
            Tuple of (tenant relative path, resolved path, bytes written)
        """
        name = PurePosixPath((filename or "").replace("\\", "/")).name
        if not name or name in (".", ".."):
            raise InvalidPathError(filename or "", "Upload needs a file name")

        directory = (directory or "").strip()
        target = f"{directory.rstrip('/')}/{name}" if directory else name

        path, size = await self.write_file(tenant_id, target, data)
        return target, path, size

    async def create_directory(self, tenant_id: str, sub_path: str) -> Path:
        async with self._tracked("mkdir", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)
            await self.tree.create_directory(path)

        logger.info("directory_created", tenant_id=tenant_id, path=sub_path)
        return path

    async def delete(self, tenant_id: str, sub_path: str) -> Path:
        async with self._tracked("delete", tenant_id):
            path = self.resolve_path(tenant_id, sub_path)

            if self._is_root(tenant_id, path):
                raise InvalidOperationError("/", "Cannot delete the storage root")

            if not await self.tree.exists(path):
                raise NodeNotFoundError(sub_path)

            await self.tree.delete_recursive(path)

        logger.info("node_deleted", tenant_id=tenant_id, path=sub_path)
        return path

    async def rename(self, tenant_id: str, old_sub_path: str, new_sub_path: str) -> Tuple[Path, Path]:
        async with self._tracked("rename", tenant_id):
            old_path = self.resolve_path(tenant_id, old_sub_path)
            new_path = self.resolve_path(tenant_id, new_sub_path)

            if self._is_root(tenant_id, old_path) or self._is_root(tenant_id, new_path):
                raise InvalidOperationError("/", "Cannot rename the storage root")

            await self.tree.rename(old_path, new_path)

        logger.info(
            "node_renamed", tenant_id=tenant_id, old_path=old_sub_path, new_path=new_sub_path
        )
        return old_path, new_path

    async def usage(self, tenant_id: str) -> DiskUsage:
        return await self.quota.usage(tenant_id)

    @asynccontextmanager
    async def _tracked(self, operation: str, tenant_id: str):
        """Record the outcome and keep server paths out of storage errors"""
        async with _track_outcome(operation):
            try:
                yield
            except StorageError as e:
                self._hide_server_path(tenant_id, e)
                raise

    def _hide_server_path(self, tenant_id: str, error: StorageError) -> None:
        path = getattr(error, "path", None)
        # Client supplied paths are reported as given
        if not path or not os.path.isabs(path):
            return
        if not PathResolver.is_within(self.resolver.storage_root, path):
            return

        root = self.resolver.storage_root / tenant_id
        if PathResolver.is_within(root, path):
            error.path = self.relative_path(tenant_id, Path(path))
        else:
            error.path = PurePosixPath(path).name

    async def _require_file(self, path: Path, sub_path: str) -> None:
        if await self.tree.is_directory(path):
            raise InvalidOperationError(sub_path or "/", "Path is a directory")
        if not await self.tree.exists(path):
            raise NodeNotFoundError(sub_path)
