"""
Data models for the TW Stocks Dashboard.

All Pydantic models representing FinMind market data, the AI analysis
result, and the per-request report returned to the dashboard.  Every
record is produced once per request; nothing here is persisted.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FetchStatus(str, Enum):
    """Outcome of a FinMind fetch, surfaced to the dashboard as-is."""

    SUCCESS = "success"
    NO_DATA = "nodata"
    ERROR = "error"


class Trend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class BrokerageSide(str, Enum):
    NET_BUY = "買超"
    NET_SELL = "賣超"


# ---------------------------------------------------------------------------
# FinMind records
# ---------------------------------------------------------------------------

class PriceBar(BaseModel):
    """One daily bar from the ``TaiwanStockPrice`` dataset.

    FinMind field names (``max``, ``min``, ``Trading_Volume`` …) are
    accepted as aliases so raw rows validate directly.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: str
    stock_id: str = ""
    open: float = 0.0
    high: float = Field(default=0.0, alias="max")
    low: float = Field(default=0.0, alias="min")
    close: float
    spread: float = 0.0
    volume: int = Field(default=0, alias="Trading_Volume")
    money: int = Field(default=0, alias="Trading_money")
    turnover: int = Field(default=0, alias="Trading_turnover")


class StockSnapshot(BaseModel):
    """Latest quote, valuation ratios and recent history for one stock."""

    id: str
    name: str = ""
    price: float = 0.0
    change: float = 0.0
    pct: float = 0.0
    volume: int = 0
    per: Optional[float] = None
    pbr: Optional[float] = None
    history: list[PriceBar] = Field(default_factory=list)
    last_update: str = ""
    score: Optional[float] = None
    trend: Optional[Trend] = None
    error: bool = False


class InstitutionalFlow(BaseModel):
    """Net buy/sell volume (shares) per investor class for one stock."""

    date: str = ""
    foreign: int = 0
    trust: int = 0
    dealer: int = 0
    total: int = 0
    status: FetchStatus = FetchStatus.SUCCESS


class MarketIndex(BaseModel):
    """TAIEX snapshot; ``volume`` is formatted in units of 100 million."""

    price: float = 0.0
    change: float = 0.0
    pct: float = 0.0
    volume: str = ""
    date: str = ""
    status: FetchStatus = FetchStatus.SUCCESS


class FundFlow(BaseModel):
    """Market-wide institutional net flow in units of 100 million TWD."""

    total: float = 0.0
    date: str = ""
    direction: str = ""
    status: FetchStatus = FetchStatus.SUCCESS


# ---------------------------------------------------------------------------
# AI analysis result (also the structured-output schema sent to the LLM)
# ---------------------------------------------------------------------------

class ForecastDay(BaseModel):
    date: str
    price: float
    low: float
    high: float


class Prediction(BaseModel):
    days: list[ForecastDay] = Field(default_factory=list)


class Brokerage(BaseModel):
    """A brokerage branch the model attributes recent positioning to."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    amount: float = 0.0
    side: BrokerageSide = Field(default=BrokerageSide.NET_BUY, alias="type")


class AIAnalysis(BaseModel):
    """Structured commentary returned by the analyst model."""

    summary: str = Field(description="技術面總結")
    financial: str = Field(description="基於本益比/股淨比的財務健康度評估")
    institutional: str = Field(description="法人籌碼情緒分析")
    prediction: Prediction = Field(
        default_factory=Prediction,
        description="未來 3 個交易日的價格與區間預測",
    )
    score: float = Field(description="0-100 的 AI 綜合評分")
    brokerages: list[Brokerage] = Field(
        default_factory=list,
        description="3 家可能正在佈局的活躍主力券商",
    )

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return max(0.0, min(float(v), 100.0))


# ---------------------------------------------------------------------------
# Dashboard aggregates
# ---------------------------------------------------------------------------

class ChartPoint(BaseModel):
    date: str
    open: float
    close: float
    high: float
    low: float
    volume: int


class MarketOverview(BaseModel):
    index: MarketIndex
    fund_flow: FundFlow
    hot_stocks: list[StockSnapshot] = Field(default_factory=list)
    connection: str = "connected"


class StockReport(BaseModel):
    """Everything the detail view needs for one analysed stock."""

    snapshot: StockSnapshot
    institutional: InstitutionalFlow
    analysis: AIAnalysis
    chart: list[ChartPoint] = Field(default_factory=list)
