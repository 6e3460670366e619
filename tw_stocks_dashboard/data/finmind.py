"""
FinMind API client for Taiwan Stock Exchange (TWSE/TPEx) data.

Uses the public FinMind v4 data endpoint
(``https://api.finmindtrade.com/api/v4/data``), which serves every dataset
through one URL parameterised by ``dataset``, ``data_id`` and ``start_date``
and wraps results in a ``{"msg", "status", "data"}`` envelope.

This module serves two purposes:
1. **Dataset access** — a single :func:`get_dataset` helper that either
   returns the ``data`` array or raises :class:`FinMindError`.
2. **Identifier resolution** — map a free-text query (code or Chinese name)
   to the canonical stock code using a cached ``TaiwanStockInfo`` list.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests

from tw_stocks_dashboard.infra.config import get_settings

logger = logging.getLogger(__name__)

# Dataset names
STOCK_INFO = "TaiwanStockInfo"
STOCK_PRICE = "TaiwanStockPrice"
STOCK_PER = "TaiwanStockPER"
STOCK_INSTITUTIONAL = "TaiwanStockInstitutionalInvestors"
TOTAL_INSTITUTIONAL = "TaiwanStockTotalInstitutionalInvestors"

TAIEX = "TAIEX"


class FinMindError(Exception):
    """Raised when a FinMind request fails or returns an unusable payload."""


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------

def get_dataset(
    dataset: str,
    data_id: str | None = None,
    start_date: str | None = None,
) -> list[dict[str, Any]]:
    """Perform a GET request for *dataset* and return its ``data`` rows.

    Returns an empty list when the envelope carries no data.

    Raises:
        FinMindError: on network failure, non-200 status or malformed JSON.
    """
    s = get_settings()
    params: dict[str, str] = {"dataset": dataset}
    if data_id:
        params["data_id"] = data_id
    if start_date:
        params["start_date"] = start_date

    headers = {}
    if s.finmind_api_token:
        headers["Authorization"] = f"Bearer {s.finmind_api_token}"

    try:
        resp = requests.get(
            s.finmind_base_url, params=params, headers=headers, timeout=s.http_timeout
        )
    except requests.RequestException as exc:
        raise FinMindError(f"FinMind request for {dataset} failed: {exc}") from exc

    if resp.status_code != 200:
        raise FinMindError(
            f"FinMind {dataset} returned status {resp.status_code}"
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise FinMindError(f"FinMind {dataset} returned invalid JSON") from exc

    if not isinstance(payload, dict):
        raise FinMindError(f"FinMind {dataset} returned an unexpected payload")

    data = payload.get("data") or []
    logger.debug("FinMind %s (%s) returned %d rows", dataset, data_id or "-", len(data))
    return data


# ---------------------------------------------------------------------------
# Stock list cache
# ---------------------------------------------------------------------------

class _StockListCache:
    """``TaiwanStockInfo`` rows held in memory for ``ttl`` seconds.

    Empty or failed fetches are never stored, so the next lookup retries.
    """

    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []
        self._loaded_at: float = 0.0
        self._lock = threading.Lock()

    def get(self) -> list[dict[str, Any]]:
        ttl = get_settings().stock_list_ttl_seconds
        with self._lock:
            if self._rows and time.monotonic() - self._loaded_at < ttl:
                return self._rows

            try:
                rows = get_dataset(STOCK_INFO)
            except FinMindError as exc:
                logger.error("Could not load the stock list: %s", exc)
                return []

            if not rows:
                logger.warning("FinMind returned an empty stock list")
                return []

            self._rows = rows
            self._loaded_at = time.monotonic()
            logger.info("Loaded %d Taiwan stocks from FinMind", len(rows))
            return self._rows

    def clear(self) -> None:
        with self._lock:
            self._rows = []
            self._loaded_at = 0.0


_stock_list = _StockListCache()


def get_stock_list() -> list[dict[str, Any]]:
    """Return all listed stocks as ``{"stock_id", "stock_name", …}`` dicts."""
    return _stock_list.get()


def clear_stock_list_cache() -> None:
    _stock_list.clear()


# ---------------------------------------------------------------------------
# Identifier resolution
# ---------------------------------------------------------------------------

def resolve_stock_id(query: str) -> str | None:
    """Resolve a code or (partial) company name to the FinMind stock code.

    Order: a purely numeric query is returned unchanged; otherwise the first
    entry whose name or code equals the query wins, then the first entry
    whose name contains it.  Returns *None* when nothing matches.
    """
    trimmed = query.strip()
    if not trimmed:
        return None

    if trimmed.isascii() and trimmed.isdigit():
        return trimmed

    stocks = get_stock_list()
    for item in stocks:
        if item.get("stock_name") == trimmed or item.get("stock_id") == trimmed:
            return item["stock_id"]

    # Partial name, e.g. 台積 -> 台積電
    for item in stocks:
        if trimmed in (item.get("stock_name") or ""):
            return item["stock_id"]

    return None


def fetch_stock_name(stock_id: str) -> str:
    """Return the company name for *stock_id*, or the id itself if unknown."""
    for item in get_stock_list():
        if item.get("stock_id") == stock_id:
            return item.get("stock_name") or stock_id
    return stock_id
