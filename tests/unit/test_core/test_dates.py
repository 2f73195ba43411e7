#!/usr/bin/env python3
"""Tests for FinancialDate primitive type."""

from datetime import date, datetime, timedelta, timezone

import pytest

from ordermemo.core.dates import FinancialDate


class TestFinancialDate:
    """Test FinancialDate construction and arithmetic."""

    def test_from_string(self):
        assert FinancialDate.from_string("2024-08-15").date == date(2024, 8, 15)

    def test_from_string_custom_format(self):
        assert FinancialDate.from_string("08/15/2024", "%m/%d/%Y").date == date(2024, 8, 15)

    def test_from_string_invalid(self):
        with pytest.raises(ValueError):
            FinancialDate.from_string("2024-13-45")

    def test_from_naive_datetime_truncates(self):
        assert FinancialDate.from_datetime(datetime(2024, 8, 15, 23, 59, 59)).date == date(2024, 8, 15)

    def test_from_aware_datetime_uses_local_time(self):
        sent = datetime(2024, 8, 16, 2, 30, tzinfo=timezone.utc)
        assert FinancialDate.from_datetime(sent).date == sent.astimezone().date()

    def test_days_between_is_symmetric(self):
        a = FinancialDate.from_string("2024-08-15")
        b = FinancialDate.from_string("2024-08-19")
        assert a.days_between(b) == 4
        assert b.days_between(a) == 4
        assert a.days_between(a) == 0

    def test_days_between_across_month(self):
        a = FinancialDate.from_string("2024-02-28")
        b = FinancialDate.from_string("2024-03-01")
        assert a.days_between(b) == 2

    def test_ordering(self):
        dates = [FinancialDate.from_string(d) for d in ["2024-08-15", "2024-01-01", "2024-05-05"]]
        assert [str(d) for d in sorted(dates)] == ["2024-01-01", "2024-05-05", "2024-08-15"]

    def test_today(self):
        assert FinancialDate.today().date - date.today() <= timedelta(days=1)

    def test_formatting(self):
        d = FinancialDate.from_string("2024-08-15")
        assert d.to_iso_string() == "2024-08-15"
        assert str(d) == "2024-08-15"
