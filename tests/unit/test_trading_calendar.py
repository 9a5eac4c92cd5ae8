"""US market calendar used for price-gap detection."""

from datetime import date

import pytest

from core.orchestration.trading_calendar import is_trading_day, previous_trading_day, us_market_holidays


class TestTradingCalendar:
    @pytest.mark.parametrize("day,expected", [
        (date(2024, 3, 18), date(2024, 3, 15)),   # Monday -> Friday
        (date(2024, 3, 14), date(2024, 3, 13)),
        (date(2024, 4, 1), date(2024, 3, 28)),    # over Good Friday
        (date(2024, 1, 16), date(2024, 1, 12)),   # over MLK day
        (date(2024, 11, 29), date(2024, 11, 27)), # over Thanksgiving
    ])
    def test_previous_trading_day(self, day, expected):
        assert previous_trading_day(day) == expected

    def test_weekend_holiday_observed(self):
        # July 4th 2026 is a Saturday
        assert date(2026, 7, 3) in us_market_holidays(2026)
        assert not is_trading_day(date(2026, 7, 3))

    def test_new_year_on_saturday_not_observed_on_friday(self):
        # Jan 1st 2022 was a Saturday
        assert is_trading_day(date(2021, 12, 31))

    def test_juneteenth(self):
        assert not is_trading_day(date(2024, 6, 19))
        assert is_trading_day(date(2021, 6, 18))

    def test_weekends(self):
        assert not is_trading_day(date(2024, 3, 16))
        assert not is_trading_day(date(2024, 3, 17))
        assert is_trading_day(date(2024, 3, 15))
