"""Tests for tenant quota accounting"""

import pytest

from filehost.core.services.file_service import FileService
from filehost.core.storage import QuotaExceededError, QuotaTracker


class TestQuotaTracker:
    @pytest.mark.asyncio
    async def test_usage_is_recomputed_from_disk(self, quota: QuotaTracker, resolver):
        root = resolver.tenant_root("u1")

        assert (await quota.usage("u1")).used == 0

        (root / "a.txt").write_bytes(b"1234")
        (root / "docs").mkdir()
        (root / "docs" / "b.txt").write_bytes(b"12")

        usage = await quota.usage("u1")
        assert usage.used == 6
        assert usage.total == 10
        assert usage.percentage == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_tenants_are_accounted_separately(self, quota: QuotaTracker, resolver):
        (resolver.tenant_root("u1") / "a.txt").write_bytes(b"123456789")

        assert (await quota.usage("u2")).used == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("used", [0, 1, 5, 10])
    async def test_boundary(self, quota: QuotaTracker, resolver, used):
        (resolver.tenant_root("u1") / "a.bin").write_bytes(b"x" * used)

        usage = await quota.check_and_reserve("u1", 10 - used)
        assert usage.used == used

        with pytest.raises(QuotaExceededError) as exc_info:
            await quota.check_and_reserve("u1", 10 - used + 1)

        error = exc_info.value
        assert error.used_bytes == used
        assert error.limit_bytes == 10
        assert error.required_bytes == 10 - used + 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delta", [0, -1, -10])
    async def test_non_positive_growth_is_always_allowed(self, quota: QuotaTracker, resolver, delta):
        # Already over the ceiling
        (resolver.tenant_root("u1") / "a.bin").write_bytes(b"x" * 12)

        await quota.check_and_reserve("u1", delta)

    @pytest.mark.asyncio
    async def test_same_size_overwrite_at_full_usage(self, quota: QuotaTracker, resolver):
        target = resolver.tenant_root("u1") / "a.txt"
        target.write_bytes(b"1234567890")

        usage = await quota.check_write("u1", target, 10)

        assert usage.percentage == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_check_write_charges_the_delta(self, quota: QuotaTracker, resolver):
        root = resolver.tenant_root("u1")
        (root / "a.txt").write_bytes(b"12345678")

        await quota.check_write("u1", root / "a.txt", 10)

        with pytest.raises(QuotaExceededError):
            await quota.check_write("u1", root / "b.txt", 3)

    def test_usage_on_error_exposes_disk_usage(self):
        error = QuotaExceededError(used_bytes=5, limit_bytes=10, required_bytes=6)

        assert error.usage.used == 5
        assert error.usage.total == 10
        assert error.usage.available == 5
        assert error.usage.percentage == pytest.approx(50.0)


class TestQuotaScenario:
    @pytest.mark.asyncio
    async def test_write_reject_then_shrink(self, storage_root):
        service = FileService(storage_root=storage_root, max_user_storage_bytes=10)

        await service.write_file("u1", "a.txt", "12345")
        assert (await service.usage("u1")).used == 5

        with pytest.raises(QuotaExceededError):
            await service.write_file("u1", "b.txt", "123456")
        assert (await service.usage("u1")).used == 5
        assert not (service.resolve_path("u1", "b.txt")).exists()

        await service.write_file("u1", "a.txt", "1234")
        assert (await service.usage("u1")).used == 4
        assert await service.read_text("u1", "a.txt") == "1234"
