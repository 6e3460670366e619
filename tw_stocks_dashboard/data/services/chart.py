"""
Chart data — projects a snapshot's history onto candlestick/volume points.

Rendering is the browser's job; this only trims and reshapes the bars.
"""

from __future__ import annotations

from tw_stocks_dashboard.data.models import ChartPoint, StockSnapshot
from tw_stocks_dashboard.infra.config import get_settings


def chart_points(snapshot: StockSnapshot, bars: int | None = None) -> list[ChartPoint]:
    """Return the last *bars* daily bars with ``MM-DD`` date labels."""
    n = bars if bars is not None else get_settings().chart_bars
    if n <= 0:
        return []
    return [
        ChartPoint(
            date=bar.date[5:],
            open=bar.open,
            close=bar.close,
            high=bar.high,
            low=bar.low,
            volume=bar.volume,
        )
        for bar in snapshot.history[-n:]
    ]
