"""Tenant path resolution and sandbox confinement"""
import os
import re
from pathlib import Path, PurePosixPath
from typing import Union
from urllib.parse import unquote

from filehost.infrastructure.logging import get_logger
from filehost.infrastructure.metrics import sandbox_violations_total

from .storage_types import InvalidPathError, StorageIOError

logger = get_logger(__name__)

_REPEATED_SLASHES = re.compile(r"/+")


class PathResolver:
    """Maps untrusted, URL-supplied paths onto a tenant's root directory"""

    def __init__(self, storage_root: Path):
        """
        Initialize with the shared storage root

        Args:
            storage_root: Directory holding one subdirectory per tenant
        """
        self.storage_root = Path(storage_root).resolve()

        # Ensure base path exists
        self.storage_root.mkdir(parents=True, exist_ok=True)

    def validate_tenant_id(self, tenant_id: str) -> None:
        """
        Reject tenant ids that are not a single plain path segment

        Raises:
            InvalidPathError: If the id could address anything but its own root
        """
        if not tenant_id or tenant_id in (os.curdir, os.pardir):
            raise InvalidPathError(str(tenant_id), "Tenant id must be a plain name")

        if "/" in tenant_id or "\\" in tenant_id or "\x00" in tenant_id:
            raise InvalidPathError(tenant_id, "Tenant id contains a separator")

    def tenant_root(self, tenant_id: str) -> Path:
        """
        Return the tenant's root directory, creating it on first access

        Args:
            tenant_id: Opaque tenant identifier

        Returns:
            Absolute path of the tenant root
        """
        self.validate_tenant_id(tenant_id)
        root = self.storage_root / tenant_id

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("tenant_root_creation_failed", tenant_id=tenant_id, error=str(e))
            raise StorageIOError(str(root), str(e))

        return root

    @staticmethod
    def normalize(raw_path: str) -> str:
        """
        Decode and normalize a raw route path

        Percent-decoding happens exactly once, then backslashes become forward
        slashes, repeated slashes collapse and a single leading slash is dropped.
        """
        decoded = unquote(raw_path or "")
        normalized = decoded.replace("\\", "/")
        normalized = _REPEATED_SLASHES.sub("/", normalized)

        if normalized.startswith("/"):
            normalized = normalized[1:]

        return normalized

    @staticmethod
    def is_within(root: Union[str, Path], path: Union[str, Path]) -> bool:
        """Segment-wise containment check of path under root"""
        try:
            relative = os.path.relpath(path, root)
        except ValueError:
            # Different drives on Windows
            return False

        parts = Path(relative).parts
        return not parts or parts[0] != os.pardir

    def resolve(self, tenant_id: str, raw_path: str = "") -> Path:
        """
        Resolve an untrusted relative path inside a tenant root

        Args:
            tenant_id: Opaque tenant identifier
            raw_path: Path as received from the route, possibly percent-encoded

        Returns:
            Absolute path guaranteed to be inside the tenant root

        Raises:
            InvalidPathError: If the normalized path escapes the tenant root
        """
        normalized = self.normalize(raw_path)

        if "\x00" in normalized:
            self._reject(tenant_id, raw_path, "Path contains null byte")

        root = self.tenant_root(tenant_id)
        full_path = os.path.normpath(os.path.join(root, normalized))

        if not self.is_within(root, full_path):
            self._reject(tenant_id, raw_path, "Path traversal detected")

        # A symlink inside the root must not lead outside of it either
        if not self.is_within(os.path.realpath(root), os.path.realpath(full_path)):
            self._reject(tenant_id, raw_path, "Path resolves through a link outside the root")

        logger.debug(
            "path_resolved",
            tenant_id=tenant_id,
            raw_path=raw_path,
            resolved=full_path,
        )

        return Path(full_path)

    def relative_path(self, tenant_id: str, path: Path) -> str:
        """Render an absolute path as the tenant-visible '/a/b' form"""
        root = self.storage_root / tenant_id
        relative = PurePosixPath(Path(os.path.relpath(path, root)).as_posix())

        if str(relative) == os.curdir:
            return "/"

        return f"/{relative}"

    def _reject(self, tenant_id: str, raw_path: str, reason: str) -> None:
        sandbox_violations_total.inc()
        logger.warning(
            "sandbox_escape_attempt",
            tenant_id=tenant_id,
            raw_path=raw_path,
            reason=reason,
        )
        raise InvalidPathError(raw_path, reason)
