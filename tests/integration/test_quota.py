"""
Integration tests for the quota ledger and the usage triggers behind it.
"""

import pytest
from sqlalchemy.exc import OperationalError

from storage_gateway.core.exceptions import QuotaExceededError, QuotaLookupFailedError
from storage_gateway.features.storage.quota import (
    GB,
    QuotaLedger,
    UsageSnapshot,
    format_bytes,
    usage_percentage,
)
from storage_gateway.models.file_metadata import FileCategory
from tests.factories import FileMetadataFactory


@pytest.mark.unit
class TestFormatting:

    @pytest.mark.parametrize(
        "num_bytes, expected",
        [
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5 MB"),
            (2 * GB, "2 GB"),
            (1024 * GB, "1 TB"),
        ],
    )
    def test_format_bytes(self, num_bytes, expected):
        assert format_bytes(num_bytes) == expected

    def test_usage_percentage(self):
        assert usage_percentage(1_120_000, 5_000_000) == 22
        assert usage_percentage(0, 5_000_000) == 0
        assert usage_percentage(10, 0) == 0
        assert UsageSnapshot(total_bytes=2_500_000).usage_percentage(5_000_000) == 50


@pytest.mark.integration
class TestUsageSnapshot:

    async def test_no_usage_row_reads_as_zero(self, db_session, test_admin):
        snapshot = await QuotaLedger(db_session).current_snapshot(test_admin.id)

        assert snapshot == UsageSnapshot()

    async def test_triggers_maintain_counters(self, db_session, test_admin):
        await FileMetadataFactory.create(db_session, test_admin, file_size=1_000)
        await FileMetadataFactory.create(db_session, test_admin, file_size=2_000)
        await FileMetadataFactory.create(
            db_session, test_admin, file_type=FileCategory.REPORT.value, file_size=500
        )

        snapshot = await QuotaLedger(db_session).current_snapshot(test_admin.id)

        assert snapshot.total_bytes == 3_500
        assert snapshot.photos_bytes == 3_000
        assert snapshot.reports_bytes == 500
        assert snapshot.file_count == 3
        assert snapshot.total_bytes == snapshot.photos_bytes + snapshot.reports_bytes
        assert snapshot.last_calculated is not None

    async def test_pending_rows_are_not_counted(self, db_session, test_admin):
        await FileMetadataFactory.create(
            db_session, test_admin, file_size=9_999, upload_status="pending"
        )

        snapshot = await QuotaLedger(db_session).current_snapshot(test_admin.id)

        assert snapshot.total_bytes == 0

    async def test_counters_are_per_tenant(self, db_session, test_admin, other_admin):
        await FileMetadataFactory.create(db_session, other_admin, file_size=7_000)

        ledger = QuotaLedger(db_session)

        assert (await ledger.current_snapshot(test_admin.id)).total_bytes == 0
        assert (await ledger.current_snapshot(other_admin.id)).total_bytes == 7_000


@pytest.mark.integration
class TestQuotaPolicy:

    async def test_seeded_tiers(self, db_session, tier_quotas):
        ledger = QuotaLedger(db_session)

        assert await ledger.quota_for_tier("starter") == 2 * GB
        assert await ledger.quota_for_tier("professional") == 5 * GB
        assert await ledger.quota_for_tier("enterprise") == 1024 * GB

    async def test_unknown_tier_fails_closed(self, db_session, tier_quotas):
        with pytest.raises(QuotaLookupFailedError) as exc_info:
            await QuotaLedger(db_session).quota_for_tier("platinum")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal Server Error: Could not fetch quota"

    async def test_database_error_fails_closed(self, test_principal):
        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise OperationalError("SELECT", {}, Exception("database is down"))

        with pytest.raises(QuotaLookupFailedError):
            await QuotaLedger(BrokenSession()).check_admission(test_principal, 1)


@pytest.mark.integration
class TestAdmission:
    """Admit iff current usage + new bytes <= quota (``trial`` = 5,000,000)."""

    async def test_admits_up_to_exact_quota(self, db_session, test_admin, test_principal):
        await FileMetadataFactory.create(db_session, test_admin, file_size=4_880_000)

        ledger = QuotaLedger(db_session)

        assert await ledger.check_admission(test_principal, 120_000) is True
        assert await ledger.check_admission(test_principal, 120_001) is False

    async def test_rejects_over_quota(self, db_session, test_admin, test_principal):
        await FileMetadataFactory.create(db_session, test_admin, file_size=4_900_000)

        with pytest.raises(QuotaExceededError) as exc_info:
            await QuotaLedger(db_session).ensure_admission(test_principal, 120_000)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Storage quota exceeded"

    async def test_admission_is_monotonic(self, db_session, test_admin, test_principal):
        await FileMetadataFactory.create(db_session, test_admin, file_size=3_000_000)
        ledger = QuotaLedger(db_session)

        sizes = [0, 1, 1_000_000, 2_000_000, 2_000_001, 3_000_000, 10**12]
        admitted = [await ledger.check_admission(test_principal, size) for size in sizes]

        # Once a size is rejected every larger size is rejected too
        assert admitted == [True, True, True, True, False, False, False]

    async def test_soft_limit_allows_bounded_overshoot(
        self, db_session, test_admin, test_principal
    ):
        """
        Two uploads checked against the same stale usage both pass.

        Admission is check-then-act without a lock; the combined overshoot
        is bounded by the smaller of the two files.
        """
        await FileMetadataFactory.create(db_session, test_admin, file_size=4_000_000)
        ledger = QuotaLedger(db_session)

        first, second = 800_000, 600_000
        assert await ledger.check_admission(test_principal, first)
        assert await ledger.check_admission(test_principal, second)

        await FileMetadataFactory.create(db_session, test_admin, file_size=first)
        await FileMetadataFactory.create(db_session, test_admin, file_size=second)

        snapshot = await ledger.current_snapshot(test_admin.id)
        overshoot = snapshot.total_bytes - 5_000_000

        assert 0 < overshoot <= min(first, second)
        assert await ledger.check_admission(test_principal, 1) is False
