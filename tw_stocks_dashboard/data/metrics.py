"""
Pure derivations over FinMind series.

No I/O here: every function takes already-fetched rows and returns plain
numbers.  Series-based helpers expect rows ordered oldest first; the
services pass them through ``sort_by_date`` before deriving anything.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from tw_stocks_dashboard.data.models import Trend

# FinMind investor names grouped into the three classes shown on the
# dashboard.  Anything else (e.g. a future category) is ignored.
FOREIGN_NAMES = frozenset({"Foreign_Investor", "Foreign_Dealer_Self"})
TRUST_NAMES = frozenset({"Investment_Trust"})
DEALER_NAMES = frozenset({"Dealer", "Dealer_self", "Dealer_Hedging"})

# Market-wide totals carry a precomputed aggregate row next to the classes.
TOTAL_NAME = "total"

HUNDRED_MILLION = 100_000_000


def sort_by_date(rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Return *rows* ordered oldest first by their ISO ``date`` field."""
    return sorted(rows, key=lambda r: r.get("date") or "")


def daily_change(
    series: Sequence[Mapping[str, Any]], key: str = "close"
) -> tuple[float, float]:
    """Return ``(change, pct)`` between the last two points of *series*.

    *series* must be ordered oldest first (see ``sort_by_date``).

    With a single point the latest value doubles as the previous one, so
    both results are zero.  Both values are rounded to two decimals.

    Raises:
        ValueError: if *series* is empty.
    """
    if not series:
        raise ValueError("daily_change needs at least one point")

    latest = float(series[-1][key])
    prev = float(series[-2][key]) if len(series) > 1 else latest
    change = latest - prev
    pct = (change / prev * 100) if prev else 0.0
    return round(change, 2), round(pct, 2)


def latest_rows(rows: Sequence[Mapping[str, Any]]) -> tuple[str, list[Mapping[str, Any]]]:
    """Return the most recent date and every row recorded on it.

    The latest date is taken as the maximum ISO date, so row order does
    not matter.
    """
    if not rows:
        return "", []
    last_date = max(r["date"] for r in rows)
    return last_date, [r for r in rows if r.get("date") == last_date]


def net_volume(row: Mapping[str, Any]) -> int:
    """Buy minus sell for one investor row."""
    return int(row.get("buy") or 0) - int(row.get("sell") or 0)


def net_by_investor(rows: Iterable[Mapping[str, Any]]) -> tuple[int, int, int]:
    """Sum net volumes into ``(foreign, trust, dealer)``."""
    foreign = trust = dealer = 0
    for row in rows:
        name = row.get("name")
        net = net_volume(row)
        if name in FOREIGN_NAMES:
            foreign += net
        elif name in TRUST_NAMES:
            trust += net
        elif name in DEALER_NAMES:
            dealer += net
    return foreign, trust, dealer


def market_net(rows: Iterable[Mapping[str, Any]]) -> int:
    """Sum the net volumes of the investor classes, skipping the aggregate row."""
    return sum(net_volume(r) for r in rows if r.get("name") != TOTAL_NAME)


def to_hundred_million(value: float, digits: int = 2) -> float:
    """Express *value* in units of 億 (10^8)."""
    return round(value / HUNDRED_MILLION, digits)


def classify_trend(pct: float) -> Trend:
    if pct > 0:
        return Trend.BULLISH
    if pct < 0:
        return Trend.BEARISH
    return Trend.NEUTRAL


def score_label(score: float) -> str:
    """Map the 0-100 AI score onto the dashboard's four rating bands."""
    if score >= 80:
        return "強勢買進"
    if score >= 60:
        return "偏多持有"
    if score >= 40:
        return "區間震盪"
    return "保守觀望"
