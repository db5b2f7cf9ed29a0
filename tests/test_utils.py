"""Tests for date utility functions."""

from datetime import date, datetime, timedelta, timezone

import pytest

from homestock.schemas import RecurringCycle
from homestock.utils import from_store_timestamp, parse_date_input, to_json_value, to_store_timestamp


class TestParseDateInput:
    """Tests for parse_date_input function."""

    def test_iso_format(self) -> None:
        assert parse_date_input("2025-02-15") == date(2025, 2, 15)

    def test_iso_datetime_string(self) -> None:
        assert parse_date_input("2025-02-15T00:00:00Z") == date(2025, 2, 15)

    def test_date_and_datetime_passthrough(self) -> None:
        assert parse_date_input(date(2025, 1, 1)) == date(2025, 1, 1)
        assert parse_date_input(datetime(2025, 1, 1, 15, 30)) == date(2025, 1, 1)

    def test_blank_means_none(self) -> None:
        assert parse_date_input(None) is None
        assert parse_date_input("") is None
        assert parse_date_input("   ") is None

    def test_impossible_date(self) -> None:
        with pytest.raises(ValueError):
            parse_date_input("2025-02-30")

    def test_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_date_input("not a date")

    def test_unsupported_type(self) -> None:
        with pytest.raises(ValueError):
            parse_date_input(12345)


class TestStoreTimestamps:
    """Tests for conversion between local dates and stored timestamps."""

    def test_to_store_is_midnight_utc(self) -> None:
        ts = to_store_timestamp(date(2025, 6, 1))
        assert ts == datetime(2025, 6, 1, tzinfo=timezone.utc)

    def test_none_stays_none(self) -> None:
        assert to_store_timestamp(None) is None
        assert from_store_timestamp(None) is None

    def test_naive_timestamp(self) -> None:
        assert from_store_timestamp(datetime(2025, 6, 1)) == date(2025, 6, 1)

    def test_aware_timestamp_normalized_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        assert from_store_timestamp(datetime(2025, 6, 1, 1, 0, tzinfo=plus_two)) == date(2025, 5, 31)

    def test_round_trip(self) -> None:
        day = date(2024, 2, 29)
        assert from_store_timestamp(to_store_timestamp(day)) == day


class TestToJsonValue:
    """Tests for history snapshot encoding."""

    def test_encodes_dates_and_enums(self) -> None:
        assert to_json_value(date(2025, 1, 2)) == "2025-01-02"
        assert to_json_value(RecurringCycle.MONTHLY) == "monthly"

    def test_passes_plain_values(self) -> None:
        assert to_json_value(3) == 3
        assert to_json_value(None) is None
        assert to_json_value("x") == "x"
