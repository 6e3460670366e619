"""
Market data service — TAIEX snapshot, market-wide institutional flow and
the hot-stock watchlist shown on the dashboard landing page.

Single Responsibility: only handles market-level retrieval.  Failures never
propagate; they are logged and collapsed into a ``FetchStatus``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from tw_stocks_dashboard.data.finmind import (
    STOCK_PRICE,
    TAIEX,
    TOTAL_INSTITUTIONAL,
    FinMindError,
    get_dataset,
)
from tw_stocks_dashboard.data.metrics import (
    HUNDRED_MILLION,
    daily_change,
    latest_rows,
    market_net,
    sort_by_date,
    to_hundred_million,
)
from tw_stocks_dashboard.data.models import (
    FetchStatus,
    FundFlow,
    MarketIndex,
    MarketOverview,
)
from tw_stocks_dashboard.data.services.stock import fetch_stock_snapshot
from tw_stocks_dashboard.infra.config import get_settings, start_date

logger = logging.getLogger(__name__)


def fetch_market_index() -> MarketIndex:
    """Fetch the latest TAIEX close with its day-over-day change."""
    since = start_date(get_settings().flow_lookback_days)
    try:
        rows = sort_by_date(get_dataset(STOCK_PRICE, data_id=TAIEX, start_date=since))
        if not rows:
            logger.warning("FinMind returned no TAIEX data since %s", since)
            return MarketIndex(status=FetchStatus.NO_DATA)

        latest = rows[-1]
        change, pct = daily_change(rows)
        volume = float(latest.get("Trading_Volume") or 0) / HUNDRED_MILLION
        return MarketIndex(
            price=float(latest["close"]),
            change=change,
            pct=pct,
            volume=f"{volume:.0f}",
            date=latest["date"],
        )
    except (FinMindError, KeyError, TypeError, ValueError) as exc:
        logger.warning("TAIEX fetch failed: %s", exc)
        return MarketIndex(status=FetchStatus.ERROR)


def fetch_fund_flow() -> FundFlow:
    """Sum the net buy/sell of every institutional class on the latest date.

    FinMind also reports a precomputed ``total`` row per day; it is left out
    of the sum so the classes are not counted twice.
    """
    since = start_date(get_settings().flow_lookback_days)
    try:
        rows = get_dataset(TOTAL_INSTITUTIONAL, start_date=since)
        if not rows:
            logger.warning("FinMind returned no institutional totals since %s", since)
            return FundFlow(status=FetchStatus.NO_DATA)

        last_date, daily = latest_rows(rows)
        total_net = market_net(daily)
        return FundFlow(
            total=to_hundred_million(total_net),
            date=last_date,
            direction="Buy" if total_net >= 0 else "Sell",
        )
    except (FinMindError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Institutional totals fetch failed: %s", exc)
        return FundFlow(status=FetchStatus.ERROR)


def load_market_overview(hot_ids: list[str] | None = None) -> MarketOverview:
    """Fetch the index, the fund flow and every hot-stock snapshot.

    The index and fund flow are fetched concurrently first; the watchlist
    snapshots follow, also concurrently.  Snapshots that errored are left
    out of the result.
    """
    s = get_settings()
    ids = hot_ids if hot_ids is not None else s.hot_stock_ids

    with ThreadPoolExecutor(max_workers=s.max_workers) as pool:
        index_future = pool.submit(fetch_market_index)
        flow_future = pool.submit(fetch_fund_flow)
        index = index_future.result()
        fund_flow = flow_future.result()

        snapshots = list(pool.map(fetch_stock_snapshot, ids))

    hot_stocks = [snap for snap in snapshots if not snap.error]
    if len(hot_stocks) < len(ids):
        logger.info("Dropped %d hot stocks without data", len(ids) - len(hot_stocks))

    return MarketOverview(
        index=index,
        fund_flow=fund_flow,
        hot_stocks=hot_stocks,
        connection="error" if index.status == FetchStatus.ERROR else "connected",
    )
