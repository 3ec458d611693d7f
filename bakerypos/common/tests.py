"""
Tests for the shared money and calendar helpers
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from bakerypos.common.money import (
    format_percent, format_signed_percent, is_whole_units, percent, percent_change, to_money, to_whole_units
)
from bakerypos.common.pagination import build_pagination, clamp_limit
from bakerypos.common.periods import DateRange, local_date_of, local_today, trailing_days


JAKARTA = ZoneInfo("Asia/Jakarta")


# ===== MONEY =====

class TestMoney:
    """Decimal currency helpers"""

    def test_to_money_quantizes_half_up(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(3) == Decimal("3.00")
        assert to_money(None) == Decimal("0.00")

    def test_to_money_goes_through_str_for_floats(self):
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_to_money_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_money("ten")

    def test_many_small_lines_do_not_drift(self):
        total = sum((to_money("0.10") for _ in range(1000)), Decimal("0"))
        assert total == Decimal("100.00")

    def test_fractional_amounts_are_detected(self):
        assert is_whole_units("15000.00")
        assert is_whole_units(0)
        assert not is_whole_units("10.50")
        assert not is_whole_units("12000.01")

    def test_whole_units(self):
        assert to_whole_units(Decimal("15000.49")) == 15000
        assert to_whole_units(Decimal("15000.50")) == 15001

    def test_percent(self):
        assert percent(Decimal("40"), Decimal("100")) == Decimal("40.0")
        assert percent(Decimal("1"), Decimal("3")) == Decimal("33.3")
        assert percent(Decimal("5"), Decimal("0")) is None

    def test_percent_change(self):
        assert percent_change(Decimal("112.50"), Decimal("100")) == Decimal("12.5")
        assert percent_change(Decimal("97"), Decimal("100")) == Decimal("-3.0")
        assert percent_change(Decimal("50"), Decimal("0")) is None

    def test_format_percent(self):
        assert format_percent(Decimal("40")) == "40.0"
        assert format_percent(None) is None

    def test_format_signed_percent(self):
        assert format_signed_percent(Decimal("12.5")) == "+12.5%"
        assert format_signed_percent(Decimal("-3")) == "-3.0%"
        assert format_signed_percent(Decimal("0")) == "+0.0%"
        assert format_signed_percent(None) == "0%"


# ===== PERIODS =====

class TestPeriods:
    """Local calendar windows"""

    def test_days_and_previous_window(self):
        window = DateRange(date(2024, 5, 1), date(2024, 5, 7))
        assert window.days == 7
        assert window.previous() == DateRange(date(2024, 4, 24), date(2024, 4, 30))

    def test_single_day_previous_is_yesterday(self):
        assert DateRange(date(2024, 5, 1), date(2024, 5, 1)).previous() == DateRange(date(2024, 4, 30), date(2024, 4, 30))

    def test_utc_bounds_follow_store_timezone(self):
        start, end = DateRange(date(2024, 5, 1), date(2024, 5, 1)).utc_bounds(JAKARTA)
        assert start == datetime(2024, 4, 30, 17, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)

    def test_local_today_and_date_of(self):
        late_evening_utc = datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)
        assert local_today(JAKARTA, late_evening_utc) == date(2024, 5, 2)
        assert local_date_of(late_evening_utc, JAKARTA) == date(2024, 5, 2)

    def test_naive_timestamps_are_utc(self):
        assert local_date_of(datetime(2024, 5, 1, 20, 0), JAKARTA) == date(2024, 5, 2)

    def test_trailing_days_include_today(self):
        window = trailing_days(7, ZoneInfo("UTC"), datetime(2024, 5, 10, 9, 0, tzinfo=timezone.utc))
        assert window == DateRange(date(2024, 5, 4), date(2024, 5, 10))


# ===== PAGINATION =====

class TestPagination:

    def test_build_pagination(self):
        assert build_pagination(2, 20, 45) == {"page": 2, "limit": 20, "total": 45, "total_pages": 3}
        assert build_pagination(1, 20, 0)["total_pages"] == 0

    def test_clamp_limit(self):
        assert clamp_limit(500) == 100
        assert clamp_limit(0) == 20
