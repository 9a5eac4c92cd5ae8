"""Indicator maths: ATR, Bollinger Bands, SMA/EMA, MACD, ADX."""

from decimal import Decimal
from datetime import date, timedelta

import pytest

from core.indicators.adx import (
    ADX_CEILING,
    ADX_DEFAULT,
    ADX_FLOOR,
    compute_simplified_adx,
    compute_wilder_adx,
)
from core.indicators.atr import compute_atr, compute_atr_ratio, true_ranges
from core.indicators.base import IndicatorSnapshot
from core.indicators.bollinger import compute_bollinger_bands
from core.indicators.macd import compute_macd, select_macd_periods
from core.indicators.moving_average import compute_ema, compute_sma, detect_crossover
from core.models.config import DEFAULT_MACD_SCHEDULE
from core.models.ohlcv import Bar
from core.models.stage import CrossoverType


def bars_from_closes(closes, spread=Decimal('1')):
    start = date(2024, 1, 1)
    bars = []
    for i, close in enumerate(closes):
        close = Decimal(str(close))
        bars.append(Bar(start + timedelta(days=i), close, close + spread, close - spread, close))
    return bars


def constant_bars(count, high='10', low='8', close='9'):
    start = date(2024, 1, 1)
    return [
        Bar(start + timedelta(days=i), Decimal(close), Decimal(high), Decimal(low), Decimal(close))
        for i in range(count)
    ]


def rising_bars(count):
    """Each bar's range sits one point above the previous one."""
    start = date(2024, 1, 1)
    return [
        Bar(start + timedelta(days=i), Decimal(i) + Decimal('0.5'), Decimal(i + 1), Decimal(i), Decimal(i) + Decimal('0.5'))
        for i in range(count)
    ]


class TestATR:
    def test_identical_bars(self):
        assert compute_atr(constant_bars(15), 14) == Decimal(2)

    def test_insufficient_bars_returns_zero(self):
        assert compute_atr(constant_bars(14), 14) == Decimal(0)
        assert compute_atr([], 14) == Decimal(0)

    def test_gap_uses_previous_close(self):
        bars = constant_bars(2)
        gapped = Bar(bars[1].date, Decimal('15'), Decimal('16'), Decimal('14'), Decimal('15'))
        # |16 - 9| beats high - low
        assert true_ranges([bars[0], gapped]) == [Decimal(7)]

    def test_non_negative(self):
        bars = bars_from_closes([10, 12, 9, 15, 11, 13, 8, 14, 10, 12, 11, 9, 13, 12, 10, 11])
        assert compute_atr(bars, 14) >= 0

    def test_ratio(self):
        assert compute_atr_ratio(Decimal(2), Decimal(50)) == Decimal(4)
        assert compute_atr_ratio(Decimal(2), Decimal(0)) == Decimal(0)

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            compute_atr(constant_bars(15), 0)


class TestBollinger:
    def test_flat_window_sits_mid_band(self):
        bands = compute_bollinger_bands(bars_from_closes([100] * 20))
        assert bands.width == Decimal(0)
        assert bands.position == Decimal('0.5')

    def test_insufficient_bars(self):
        bands = compute_bollinger_bands(bars_from_closes([100] * 19))
        assert bands.width == Decimal(0)
        assert bands.position == Decimal(0)

    def test_width_and_position(self):
        # Mean 10, population SD 1 -> bands 8..12
        bands = compute_bollinger_bands(bars_from_closes([9, 11] * 10))
        assert bands.middle == Decimal(10)
        assert bands.upper == Decimal(12)
        assert bands.lower == Decimal(8)
        assert bands.width == Decimal(40)
        assert bands.position == Decimal('0.75')

    def test_close_above_upper_band(self):
        bands = compute_bollinger_bands(bars_from_closes([10] * 19 + [20]))
        assert bands.position > 1


class TestMovingAverages:
    def test_sma_is_lazy_and_sliding(self):
        sma = compute_sma(bars_from_closes([1, 2, 3, 4, 5]), 3)
        assert not isinstance(sma, list)
        assert list(sma) == [Decimal(2), Decimal(3), Decimal(4)]

    def test_sma_insufficient(self):
        assert list(compute_sma(bars_from_closes([1, 2]), 3)) == []

    def test_ema_of_constant_is_constant(self):
        values = [Decimal('7.25')] * 30
        ema = compute_ema(values, 12)
        assert len(ema) == 19
        assert all(v == Decimal('7.25') for v in ema)

    def test_ema_seed_is_sma(self):
        ema = compute_ema([Decimal(v) for v in (2, 4, 6, 8)], 3)
        assert ema[0] == Decimal(4)
        # 4 + (8 - 4) * 0.5
        assert ema[1] == Decimal(6)

    def test_ema_insufficient(self):
        assert compute_ema([Decimal(1)], 3) == []

    @pytest.mark.parametrize("values,expected", [
        ((1, 3, 2, 2), CrossoverType.BULLISH),
        ((2, 3, 2, 2), CrossoverType.BULLISH),
        ((3, 1, 2, 2), CrossoverType.BEARISH),
        ((2, 1, 2, 2), CrossoverType.BEARISH),
        ((2, 2, 2, 2), CrossoverType.NONE),
        ((3, 4, 2, 2), CrossoverType.NONE),
    ])
    def test_crossover(self, values, expected):
        assert detect_crossover(*(Decimal(v) for v in values)) == expected


class TestMACD:
    def test_insufficient_bars(self):
        macd = compute_macd(bars_from_closes([10] * 15), 8, 16, 6)
        assert macd.histogram == ()
        assert macd.latest_histogram == Decimal(0)

    def test_series_alignment(self):
        macd = compute_macd(bars_from_closes([10] * 30), 8, 16, 6)
        assert len(macd.macd) == 15
        assert len(macd.signal) == 10
        assert len(macd.histogram) == 10
        assert all(h == 0 for h in macd.histogram)

    def test_linear_trend_matches_lag_difference(self):
        # EMA of a linear series lags by (period - 1) / 2 bars, so MACD = (16 - 8) / 2
        macd = compute_macd(bars_from_closes(range(1, 41)), 8, 16, 6)
        assert abs(macd.macd[-1] - Decimal(4)) < Decimal('1e-20')
        assert abs(macd.latest_histogram) < Decimal('1e-20')

    def test_falling_prices_negative_macd(self):
        macd = compute_macd(bars_from_closes([100 - i * 1.5 + (i % 3) for i in range(30)]), 8, 16, 6)
        assert macd.macd[-1] < 0

    def test_invalid_periods(self):
        with pytest.raises(ValueError):
            compute_macd(bars_from_closes([10] * 30), 16, 8, 6)

    @pytest.mark.parametrize("count,expected", [(30, (8, 16, 6)), (25, (8, 16, 6)), (22, (6, 12, 4)), (10, (5, 10, 3))])
    def test_adaptive_periods(self, count, expected):
        periods = select_macd_periods(count, DEFAULT_MACD_SCHEDULE)
        assert (periods.fast, periods.slow, periods.signal) == expected

    def test_thirty_bars_yield_histogram(self):
        bars = bars_from_closes([10 + (i % 4) for i in range(30)])
        periods = select_macd_periods(len(bars), DEFAULT_MACD_SCHEDULE)
        assert compute_macd(bars, periods.fast, periods.slow, periods.signal).histogram


class TestADX:
    def test_insufficient_bars_default(self):
        assert compute_simplified_adx(rising_bars(10), 14) == ADX_DEFAULT

    def test_flat_market_floor(self):
        flat = constant_bars(20, high='10', low='10', close='10')
        assert compute_simplified_adx(flat, 14) == ADX_FLOOR

    def test_strong_trend_clamped_to_ceiling(self):
        assert compute_simplified_adx(rising_bars(30), 14) == ADX_CEILING

    def test_range_bound(self):
        bars = bars_from_closes([10, 12, 9, 15, 11, 13, 8, 14, 10, 12, 11, 9, 13, 12, 10, 11, 12, 9, 10, 11])
        value = compute_simplified_adx(bars, 14)
        assert ADX_FLOOR <= value <= ADX_CEILING

    def test_wilder_needs_two_periods(self):
        assert compute_wilder_adx(rising_bars(27), 14) == Decimal(0)

    def test_wilder_pure_uptrend(self):
        assert compute_wilder_adx(rising_bars(35), 14) == Decimal(100)


class TestIndicatorSnapshot:
    def test_as_floats(self):
        floats = IndicatorSnapshot(bb_position=Decimal('0.25')).as_floats()
        assert floats['bb_position'] == 0.25
        assert floats['atr'] is None
