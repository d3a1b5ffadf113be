import pytest
from datetime import date, datetime, timedelta, timezone

from foodrx_notifier.db.custom_types import normalize_datetime


class TestNormalizeDatetime:
    """Mixed timestamp representations collapse to aware UTC."""

    def test_none_passes_through(self):
        assert normalize_datetime(None) is None

    def test_naive_datetime_is_taken_as_utc(self):
        value = normalize_datetime(datetime(2025, 6, 24, 10, 0))

        assert value == datetime(2025, 6, 24, 10, 0, tzinfo=timezone.utc)
        assert value.tzinfo is timezone.utc

    def test_aware_datetime_is_converted(self):
        plus_two = timezone(timedelta(hours=2))

        value = normalize_datetime(datetime(2025, 6, 24, 12, 0, tzinfo=plus_two))

        assert value == datetime(2025, 6, 24, 10, 0, tzinfo=timezone.utc)

    def test_date_is_midnight_utc(self):
        assert normalize_datetime(date(2025, 6, 24)) == datetime(
            2025, 6, 24, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2025-06-24", datetime(2025, 6, 24, tzinfo=timezone.utc)),
            ("2025-06-24T10:00:00Z", datetime(2025, 6, 24, 10, tzinfo=timezone.utc)),
            ("2025-06-24T12:00:00+02:00", datetime(2025, 6, 24, 10, tzinfo=timezone.utc)),
            (" 2025-06-24T10:00:00 ", datetime(2025, 6, 24, 10, tzinfo=timezone.utc)),
        ],
    )
    def test_iso_strings(self, text, expected):
        assert normalize_datetime(text) == expected

    @pytest.mark.parametrize("bad", ["", "next tuesday", 1719223200, ["2025-06-24"]])
    def test_unusable_values_are_rejected(self, bad):
        with pytest.raises(ValueError):
            normalize_datetime(bad)
