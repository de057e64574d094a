"""Directory tree operations on resolved tenant paths."""
import errno
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISREG
from typing import List, Tuple

import aiofiles.os

from filehost.infrastructure.logging import get_logger

from .mime import DEFAULT_BINARY_TYPE, guess_mime_type
from .path_resolver import PathResolver
from .storage_types import (
    InvalidOperationError,
    Node,
    NodeExistsError,
    NodeKind,
    NodeNotFoundError,
    StorageIOError,
)

logger = get_logger(__name__)


def _scan_entries(path: Path) -> List[Tuple[str, bool]]:
    entries = []
    with os.scandir(path) as it:
        for entry in it:
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            entries.append((entry.name, is_dir))
    return entries


def _sum_file_sizes(path: Path) -> int:
    total_size = 0

    def on_walk_error(error: OSError) -> None:
        logger.warning(
            "directory_size_walk_failed", path=str(error.filename), error=str(error)
        )

    for dirpath, _, filenames in os.walk(path, onerror=on_walk_error):
        for filename in filenames:
            filepath = os.path.join(dirpath, filename)
            try:
                total_size += os.lstat(filepath).st_size
            except OSError as e:
                logger.warning("directory_size_stat_failed", path=filepath, error=str(e))

    return total_size


_scan = aiofiles.os.wrap(_scan_entries)
_tree_size = aiofiles.os.wrap(_sum_file_sizes)
_rmtree = aiofiles.os.wrap(shutil.rmtree)
_copytree = aiofiles.os.wrap(shutil.copytree)
_copy2 = aiofiles.os.wrap(shutil.copy2)


class DirectoryTree:
    """Handles listing, creation, rename, deletion and sizing of nodes.

    Every method takes a path already produced by ``PathResolver.resolve``;
    no confinement checks are repeated here.
    """

    async def exists(self, path: Path) -> bool:
        """Check if anything, including a dangling link, occupies path"""
        return await aiofiles.os.path.exists(path) or await aiofiles.os.path.islink(path)

    async def is_directory(self, path: Path) -> bool:
        """Check if path is a directory; missing paths are simply not one"""
        try:
            return await aiofiles.os.path.isdir(path)
        except OSError:
            return False

    async def is_file(self, path: Path) -> bool:
        try:
            return await aiofiles.os.path.isfile(path)
        except OSError:
            return False

    async def file_size(self, path: Path) -> int:
        """Size of an existing regular file, 0 when there is none"""
        try:
            stat = await aiofiles.os.stat(path)
        except OSError:
            return 0
        return stat.st_size if S_ISREG(stat.st_mode) else 0

    async def list_directory(self, path: Path) -> List[Node]:
        """
        List directory entries, directories first

        Missing paths and non-directories produce an empty list. Entries whose
        stat fails are still returned with size 0 and the current time.
        """
        if not await self.is_directory(path):
            logger.info("directory_list_not_a_directory", path=str(path))
            return []

        try:
            scanned = await _scan(path)
        except OSError as e:
            logger.warning("directory_list_failed", path=str(path), error=str(e))
            return []

        nodes = []
        for name, is_dir in scanned:
            entry_path = Path(path) / name
            kind = NodeKind.DIRECTORY if is_dir else NodeKind.FILE

            try:
                stat = await aiofiles.os.stat(entry_path)
                size = 0 if is_dir else stat.st_size
                modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            except OSError as e:
                logger.warning(
                    "directory_entry_stat_failed", path=str(entry_path), error=str(e)
                )
                size = 0
                modified = datetime.now(timezone.utc)

            nodes.append(
                Node(
                    name=name,
                    path=entry_path,
                    kind=kind,
                    size=size,
                    modified=modified,
                    mime_type=None if is_dir else guess_mime_type(name, DEFAULT_BINARY_TYPE),
                )
            )

        nodes.sort(key=lambda node: (not node.is_directory, node.name.lower(), node.name))
        return nodes

    async def create_directory(self, path: Path, permissions: int = 0o755) -> bool:
        """Create directory and every missing parent; existing directories are fine"""
        try:
            await aiofiles.os.makedirs(path, mode=permissions, exist_ok=True)
        except FileExistsError:
            raise NodeExistsError(str(path))
        except NotADirectoryError:
            raise InvalidOperationError(str(path), "A parent segment is a file")
        except OSError as e:
            logger.error("directory_create_failed", path=str(path), error=str(e))
            raise StorageIOError(str(path), str(e))

        return True

    async def delete_recursive(self, path: Path) -> bool:
        """Remove a file, or a directory with everything beneath it"""
        try:
            if await aiofiles.os.path.isdir(path) and not await aiofiles.os.path.islink(path):
                await _rmtree(path)
            else:
                await aiofiles.os.remove(path)
        except FileNotFoundError:
            raise NodeNotFoundError(str(path))
        except OSError as e:
            logger.error("delete_failed", path=str(path), error=str(e))
            raise StorageIOError(str(path), str(e))

        logger.info("node_deleted", path=str(path))
        return True

    async def rename(self, old_path: Path, new_path: Path) -> bool:
        """
        Move a node to a new path without ever overwriting the destination

        Raises:
            NodeNotFoundError: If old_path does not exist
            NodeExistsError: If new_path already exists
            InvalidOperationError: If a directory would move inside itself
            StorageIOError: If the destination parent cannot be created or the move fails
        """
        old_path, new_path = Path(old_path), Path(new_path)

        if not await self.exists(old_path):
            raise NodeNotFoundError(str(old_path))

        if new_path != old_path and PathResolver.is_within(old_path, new_path):
            raise InvalidOperationError(str(new_path), "Cannot move a directory into itself")

        parent = new_path.parent
        try:
            await aiofiles.os.makedirs(parent, exist_ok=True)
        except (FileExistsError, NotADirectoryError):
            raise InvalidOperationError(str(new_path), "A parent segment is a file")
        except OSError as e:
            logger.error("rename_parent_create_failed", path=str(parent), error=str(e))
            raise StorageIOError(str(parent), str(e))

        # Point-in-time check; a concurrent writer can still race us here
        if await self.exists(new_path):
            raise NodeExistsError(str(new_path))

        try:
            await aiofiles.os.rename(old_path, new_path)
        except OSError as e:
            if e.errno != errno.EXDEV:
                logger.error(
                    "rename_failed", old_path=str(old_path), new_path=str(new_path), error=str(e)
                )
                raise StorageIOError(str(old_path), str(e))
            await self._copy_then_delete(old_path, new_path)

        logger.info("node_renamed", old_path=str(old_path), new_path=str(new_path))
        return True

    async def directory_size(self, path: Path) -> int:
        """
        Sum the sizes of every file beneath path

        Entries that cannot be read are logged and skipped so that a single
        bad entry yields a partial sum instead of an error.
        """
        if await self.is_file(path):
            return await self.file_size(path)

        return await _tree_size(path)

    async def _copy_then_delete(self, old_path: Path, new_path: Path) -> None:
        """Fallback move across devices; the source goes only after the copy is complete"""
        try:
            if await self.is_directory(old_path):
                await _copytree(old_path, new_path, symlinks=True)
            else:
                await _copy2(old_path, new_path)
        except OSError as e:
            logger.error(
                "rename_copy_failed", old_path=str(old_path), new_path=str(new_path), error=str(e)
            )
            await self._discard_partial_copy(new_path)
            raise StorageIOError(str(new_path), str(e))

        try:
            if await self.is_directory(old_path):
                await _rmtree(old_path)
            else:
                await aiofiles.os.remove(old_path)
        except OSError as e:
            # Both copies remain; nothing is lost
            logger.error("rename_source_cleanup_failed", path=str(old_path), error=str(e))
            raise StorageIOError(str(old_path), str(e))

    async def _discard_partial_copy(self, path: Path) -> None:
        try:
            if await self.is_directory(path):
                await _rmtree(path, ignore_errors=True)
            elif await self.exists(path):
                await aiofiles.os.remove(path)
        except OSError as e:
            logger.warning("rename_partial_copy_cleanup_failed", path=str(path), error=str(e))
