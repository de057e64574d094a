"""Per-tenant disk quota accounting.

Usage is never cached: every query walks the tenant root, so the figure
always matches what is on disk. Concurrent writers of one tenant can both
pass a check taken before either write lands; the overshoot is bounded by
one write batch and shows up in the next query.
"""
from pathlib import Path

from filehost.infrastructure.logging import get_logger
from filehost.infrastructure.metrics import quota_rejections_total

from .directory_tree import DirectoryTree
from .path_resolver import PathResolver
from .storage_types import DiskUsage, QuotaExceededError

logger = get_logger(__name__)


class QuotaTracker:
    """Computes tenant usage and enforces the shared storage ceiling"""

    def __init__(self, resolver: PathResolver, tree: DirectoryTree, max_bytes: int):
        self.resolver = resolver
        self.tree = tree
        self.max_bytes = max_bytes

    async def used_bytes(self, tenant_id: str) -> int:
        """Recursive size of the tenant root, computed fresh"""
        root = self.resolver.tenant_root(tenant_id)
        return await self.tree.directory_size(root)

    async def usage(self, tenant_id: str) -> DiskUsage:
        return DiskUsage(used=await self.used_bytes(tenant_id), total=self.max_bytes)

    async def check_and_reserve(self, tenant_id: str, additional_bytes: int) -> DiskUsage:
        """
        Check that additional_bytes still fit under the ceiling

        Nothing is actually reserved; the check only guards the write that
        follows it. Zero or negative growth is always allowed, so tenants at
        or over the ceiling can still shrink their files.

        Returns:
            Usage snapshot the decision was based on

        Raises:
            QuotaExceededError: If used + additional_bytes exceeds the ceiling
        """
        usage = await self.usage(tenant_id)

        if additional_bytes > 0 and usage.used + additional_bytes > self.max_bytes:
            quota_rejections_total.inc()
            logger.warning(
                "quota_exceeded",
                tenant_id=tenant_id,
                used_bytes=usage.used,
                required_bytes=additional_bytes,
                limit_bytes=self.max_bytes,
            )
            raise QuotaExceededError(
                used_bytes=usage.used,
                limit_bytes=self.max_bytes,
                required_bytes=additional_bytes,
            )

        return usage

    async def check_write(self, tenant_id: str, path: Path, new_size: int) -> DiskUsage:
        """Quota check for writing new_size bytes at path, charged by delta against any existing file"""
        old_size = await self.tree.file_size(path)
        return await self.check_and_reserve(tenant_id, new_size - old_size)
