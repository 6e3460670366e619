"""
Shared test fixtures and helpers.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage

from tw_stocks_dashboard.data import finmind
from tw_stocks_dashboard.data.models import (
    AIAnalysis,
    Brokerage,
    BrokerageSide,
    ForecastDay,
    InstitutionalFlow,
    PriceBar,
    Prediction,
    StockSnapshot,
)


# ---------------------------------------------------------------------------
# Mock LLM that returns canned responses
# ---------------------------------------------------------------------------


def make_mock_llm(response_text: str = "{}") -> MagicMock:
    """Return a MagicMock that behaves like a BaseChatModel.

    The mock does NOT support ``with_structured_output`` — calling it
    raises ``NotImplementedError`` so the analyst falls back to parsing
    the plain reply as JSON.
    """
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content=response_text)
    llm.with_structured_output.side_effect = NotImplementedError(
        "mock LLM does not support structured output"
    )
    return llm


def make_structured_mock_llm(structured_response: Any) -> MagicMock:
    """Return a MagicMock whose ``with_structured_output`` chain returns
    *structured_response* directly.
    """
    inner = MagicMock()
    inner.invoke.return_value = structured_response

    llm = MagicMock()
    llm.with_structured_output.return_value = inner
    return llm


def make_response(payload: Any, status_code: int = 200) -> MagicMock:
    """Return a fake ``requests.Response`` carrying *payload* as JSON."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


# ---------------------------------------------------------------------------
# FinMind rows
# ---------------------------------------------------------------------------


STOCK_INFO_ROWS = [
    {"industry_category": "半導體業", "stock_id": "2330", "stock_name": "台積電", "type": "twse"},
    {"industry_category": "其他電子業", "stock_id": "2317", "stock_name": "鴻海", "type": "twse"},
    {"industry_category": "半導體業", "stock_id": "2454", "stock_name": "聯發科", "type": "twse"},
    {"industry_category": "ETF", "stock_id": "00679B", "stock_name": "元大美債20年", "type": "twse"},
    {"industry_category": "半導體業", "stock_id": "5347", "stock_name": "世界先進", "type": "tpex"},
]


def price_row(date: str, close: float, volume: int = 30_000_000) -> dict[str, Any]:
    return {
        "date": date,
        "stock_id": "2330",
        "Trading_Volume": volume,
        "Trading_money": int(volume * close),
        "open": close - 5,
        "max": close + 10,
        "min": close - 10,
        "close": close,
        "spread": 5.0,
        "Trading_turnover": 45_000,
    }


@pytest.fixture
def price_rows() -> list[dict[str, Any]]:
    return [
        price_row("2026-10-13", 980.0),
        price_row("2026-10-14", 1000.0),
        price_row("2026-10-15", 1050.0, volume=42_000_000),
    ]


@pytest.fixture
def per_rows() -> list[dict[str, Any]]:
    return [
        {"date": "2026-10-14", "stock_id": "2330", "dividend_yield": 1.5, "PER": 24.1, "PBR": 7.2},
        {"date": "2026-10-15", "stock_id": "2330", "dividend_yield": 1.4, "PER": 25.3, "PBR": 7.6},
    ]


@pytest.fixture
def institutional_rows() -> list[dict[str, Any]]:
    return [
        {"date": "2026-10-14", "stock_id": "2330", "name": "Foreign_Investor", "buy": 9_000, "sell": 1_000},
        {"date": "2026-10-15", "stock_id": "2330", "name": "Foreign_Dealer_Self", "buy": 100, "sell": 0},
        {"date": "2026-10-15", "stock_id": "2330", "name": "Foreign_Investor", "buy": 12_000, "sell": 4_000},
        {"date": "2026-10-15", "stock_id": "2330", "name": "Investment_Trust", "buy": 1_500, "sell": 2_000},
        {"date": "2026-10-15", "stock_id": "2330", "name": "Dealer_self", "buy": 300, "sell": 800},
        {"date": "2026-10-15", "stock_id": "2330", "name": "Dealer_Hedging", "buy": 700, "sell": 100},
    ]


# ---------------------------------------------------------------------------
# Sample domain data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_snapshot(price_rows) -> StockSnapshot:
    return StockSnapshot(
        id="2330",
        name="台積電",
        price=1050.0,
        change=50.0,
        pct=5.0,
        volume=42_000_000,
        per=25.3,
        pbr=7.6,
        history=[PriceBar.model_validate(r) for r in price_rows],
        last_update="2026-10-15",
    )


@pytest.fixture
def sample_flow() -> InstitutionalFlow:
    return InstitutionalFlow(
        date="2026-10-15", foreign=8_100, trust=-500, dealer=100, total=7_700
    )


@pytest.fixture
def sample_analysis() -> AIAnalysis:
    return AIAnalysis(
        summary="股價站上所有均線，短線動能強勁。",
        financial="本益比 25 倍位於歷史區間中緣，財務體質穩健。",
        institutional="外資連續買超，籌碼集中。",
        prediction=Prediction(days=[
            ForecastDay(date="2026-10-16", price=1060, low=1040, high=1075),
            ForecastDay(date="2026-10-19", price=1070, low=1045, high=1085),
            ForecastDay(date="2026-10-20", price=1065, low=1040, high=1080),
        ]),
        score=82,
        brokerages=[
            Brokerage(name="摩根大通", amount=3200, side=BrokerageSide.NET_BUY),
            Brokerage(name="美林", amount=1800, side=BrokerageSide.NET_BUY),
            Brokerage(name="凱基台北", amount=900, side=BrokerageSide.NET_SELL),
        ],
    )


@pytest.fixture(autouse=True)
def _fresh_stock_list():
    """Every test starts with an empty stock-list cache."""
    finmind.clear_stock_list_cache()
    yield
    finmind.clear_stock_list_cache()
