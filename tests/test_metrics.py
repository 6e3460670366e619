"""
Tests for the pure series derivations.
"""

import pytest

from tw_stocks_dashboard.data.metrics import (
    classify_trend,
    daily_change,
    latest_rows,
    market_net,
    net_by_investor,
    score_label,
    sort_by_date,
    to_hundred_million,
)
from tw_stocks_dashboard.data.models import Trend


class TestDailyChange:
    def test_two_points(self):
        assert daily_change([{"close": 100}, {"close": 105}]) == (5.0, 5.0)

    def test_uses_last_two_points_only(self):
        series = [{"close": 50}, {"close": 200}, {"close": 190}]
        change, pct = daily_change(series)
        assert change == -10.0
        assert pct == -5.0

    def test_rounds_to_two_decimals(self):
        change, pct = daily_change([{"close": 3}, {"close": 4}])
        assert change == 1.0
        assert pct == 33.33

    def test_single_point_has_no_change(self):
        assert daily_change([{"close": 88.8}]) == (0.0, 0.0)

    def test_zero_previous_gives_zero_pct(self):
        assert daily_change([{"close": 0}, {"close": 10}]) == (10.0, 0.0)

    def test_custom_key(self):
        assert daily_change([{"price": 20}, {"price": 19}], key="price") == (-1.0, -5.0)

    def test_empty_series_raises(self):
        with pytest.raises(ValueError):
            daily_change([])


class TestInstitutional:
    def test_latest_rows(self, institutional_rows):
        date, rows = latest_rows(institutional_rows)
        assert date == "2026-10-15"
        assert len(rows) == 5

    def test_latest_rows_unordered(self, institutional_rows):
        date, rows = latest_rows(list(reversed(institutional_rows)))
        assert date == "2026-10-15"
        assert len(rows) == 5

    def test_latest_rows_empty(self):
        assert latest_rows([]) == ("", [])

    def test_net_by_investor(self, institutional_rows):
        _, rows = latest_rows(institutional_rows)
        foreign, trust, dealer = net_by_investor(rows)
        assert foreign == 8_100  # 8000 + 100
        assert trust == -500
        assert dealer == 100  # -500 + 600

    def test_total_equals_sum_of_classes(self, institutional_rows):
        _, rows = latest_rows(institutional_rows)
        foreign, trust, dealer = net_by_investor(rows)
        assert foreign + trust + dealer == 7_700

    def test_unknown_names_ignored(self):
        rows = [{"name": "Retail", "buy": 10, "sell": 0}]
        assert net_by_investor(rows) == (0, 0, 0)

    def test_legacy_dealer_name(self):
        rows = [{"name": "Dealer", "buy": 10, "sell": 4}]
        assert net_by_investor(rows) == (0, 0, 6)

    def test_market_net_skips_aggregate_row(self):
        rows = [
            {"name": "Foreign_Investor", "buy": 30, "sell": 10},
            {"name": "Investment_Trust", "buy": 10, "sell": 0},
            {"name": "total", "buy": 40, "sell": 10},
        ]
        assert market_net(rows) == 30

    def test_sort_by_date(self):
        rows = [{"date": "2026-10-15"}, {"date": "2026-10-13"}, {"date": "2026-10-14"}]
        assert [r["date"] for r in sort_by_date(rows)] == ["2026-10-13", "2026-10-14", "2026-10-15"]


class TestHelpers:
    def test_to_hundred_million(self):
        assert to_hundred_million(1_234_567_890) == 12.35
        assert to_hundred_million(-250_000_000, digits=0) == -2.0

    @pytest.mark.parametrize(
        "pct, expected",
        [(1.2, Trend.BULLISH), (-0.01, Trend.BEARISH), (0.0, Trend.NEUTRAL)],
    )
    def test_classify_trend(self, pct, expected):
        assert classify_trend(pct) == expected

    @pytest.mark.parametrize(
        "score, label",
        [(95, "強勢買進"), (80, "強勢買進"), (65, "偏多持有"), (40, "區間震盪"), (12, "保守觀望")],
    )
    def test_score_label(self, score, label):
        assert score_label(score) == label
