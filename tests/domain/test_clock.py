"""Clock behaviour relied on by spawning and classification."""

from datetime import UTC, date, datetime, timedelta, timezone

from compliance_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_time_only_moves_when_told(self):
        clock = DeterministicClock(datetime(2024, 3, 31, 23, 0))
        assert clock.now() == clock.now()
        assert clock.today() == date(2024, 3, 31)

        clock.advance(seconds=3600)
        assert clock.today() == date(2024, 4, 1)

    def test_advance_days_and_set_time(self):
        clock = DeterministicClock(datetime(2024, 1, 30, 9, 0))
        clock.advance_days(2)
        assert clock.now() == datetime(2024, 2, 1, 9, 0)

        clock.set_time(datetime(2025, 6, 1))
        assert clock.today() == date(2025, 6, 1)

    def test_default_start(self):
        assert DeterministicClock().now() == datetime(2024, 1, 1, 12, 0, 0)


class TestSystemClock:

    def test_utc_by_default(self):
        assert SystemClock().now().tzinfo is UTC

    def test_custom_zone(self):
        plus_ten = timezone(timedelta(hours=10))
        now = SystemClock(plus_ten).now()
        assert now.utcoffset() == timedelta(hours=10)
