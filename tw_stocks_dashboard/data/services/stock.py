"""
Stock data service — builds per-stock snapshots and institutional flow.

Single Responsibility: only handles per-stock retrieval and the derived
change/percentage fields.  Failures are logged and returned as an errored
snapshot or a ``FetchStatus``; nothing here raises to the caller.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from pydantic import ValidationError

from tw_stocks_dashboard.data.finmind import (
    STOCK_INSTITUTIONAL,
    STOCK_PER,
    STOCK_PRICE,
    FinMindError,
    fetch_stock_name,
    get_dataset,
)
from tw_stocks_dashboard.data.metrics import (
    daily_change,
    latest_rows,
    net_by_investor,
    sort_by_date,
)
from tw_stocks_dashboard.data.models import (
    FetchStatus,
    InstitutionalFlow,
    PriceBar,
    StockSnapshot,
)
from tw_stocks_dashboard.infra.config import get_settings, start_date

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (FinMindError, KeyError, TypeError, ValueError, ValidationError)


def _optional_ratio(row: dict | None, key: str) -> float | None:
    if not row or row.get(key) is None:
        return None
    return float(row[key])


def fetch_stock_snapshot(stock_id: str) -> StockSnapshot:
    """Fetch price history, name and valuation ratios for *stock_id*.

    Price history and name are fetched concurrently; the PER/PBR lookup
    follows only when the stock has price data.  Returns a snapshot with
    ``error=True`` when there is no price data or any call fails.
    """
    s = get_settings()
    since = start_date(s.price_history_days)
    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            price_future = pool.submit(
                get_dataset, STOCK_PRICE, data_id=stock_id, start_date=since
            )
            name_future = pool.submit(fetch_stock_name, stock_id)
            rows = sort_by_date(price_future.result())
            name = name_future.result()

        if not rows:
            logger.warning("FinMind returned no price data for %s", stock_id)
            return StockSnapshot(id=stock_id, error=True)

        per_rows = sort_by_date(get_dataset(STOCK_PER, data_id=stock_id, start_date=since))
        latest_per = per_rows[-1] if per_rows else None

        history = [PriceBar.model_validate(r) for r in rows]
        latest = history[-1]
        change, pct = daily_change(rows)

        return StockSnapshot(
            id=stock_id,
            name=name,
            price=latest.close,
            change=change,
            pct=pct,
            volume=latest.volume,
            per=_optional_ratio(latest_per, "PER"),
            pbr=_optional_ratio(latest_per, "PBR"),
            history=history,
            last_update=latest.date,
        )
    except _FETCH_ERRORS as exc:
        logger.warning("Snapshot fetch failed for %s: %s", stock_id, exc)
        return StockSnapshot(id=stock_id, error=True)


def fetch_stock_institutional(stock_id: str) -> InstitutionalFlow:
    """Net buy/sell per investor class for *stock_id* on the latest date."""
    since = start_date(get_settings().flow_lookback_days)
    try:
        rows = get_dataset(STOCK_INSTITUTIONAL, data_id=stock_id, start_date=since)
        if not rows:
            logger.warning("FinMind returned no institutional data for %s", stock_id)
            return InstitutionalFlow(status=FetchStatus.NO_DATA)

        last_date, daily = latest_rows(rows)
        foreign, trust, dealer = net_by_investor(daily)
        return InstitutionalFlow(
            date=last_date,
            foreign=foreign,
            trust=trust,
            dealer=dealer,
            total=foreign + trust + dealer,
        )
    except _FETCH_ERRORS as exc:
        logger.warning("Institutional fetch failed for %s: %s", stock_id, exc)
        return InstitutionalFlow(status=FetchStatus.ERROR)
