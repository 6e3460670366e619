"""
Configuration and dependency wiring.

Single Responsibility: only manages settings and shared resources.
All user-tunable values live here as environment-variable-backed
class attributes so they can be changed via ``.env`` without touching code.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import re as _re
from functools import lru_cache
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

load_dotenv()


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings read from environment variables.

    Every attribute has a sensible default so the dashboard runs out of the
    box with just ``OPENAI_API_KEY`` set.  FinMind works anonymously with a
    lower rate limit; set ``FINMIND_API_TOKEN`` to lift it.
    """

    # -- LLM -------------------------------------------------------------------
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.2"))

    # -- FinMind ---------------------------------------------------------------
    finmind_base_url: str = os.getenv(
        "FINMIND_BASE_URL", "https://api.finmindtrade.com/api/v4/data"
    )
    finmind_api_token: str = os.getenv("FINMIND_API_TOKEN", "")

    # -- Timezone ---------------------------------------------------------------
    timezone: str = os.getenv("TIMEZONE", "Asia/Taipei")

    # -- HTTP timeouts (seconds) -----------------------------------------------
    http_timeout: int = int(os.getenv("HTTP_TIMEOUT", "15"))

    # -- Fetch windows (calendar days back from today) ---------------------------
    price_history_days: int = int(os.getenv("PRICE_HISTORY_DAYS", "120"))
    flow_lookback_days: int = int(os.getenv("FLOW_LOOKBACK_DAYS", "10"))

    # -- Stock list cache --------------------------------------------------------
    stock_list_ttl_seconds: int = int(os.getenv("STOCK_LIST_TTL_SECONDS", "86400"))

    # -- Dashboard ---------------------------------------------------------------
    hot_stock_ids: list[str] = _csv(
        os.getenv("HOT_STOCK_IDS", "2330,2317,2454,2603,2881,0050")
    )
    analysis_history_bars: int = int(os.getenv("ANALYSIS_HISTORY_BARS", "10"))
    chart_bars: int = int(os.getenv("CHART_BARS", "40"))
    search_history_size: int = int(os.getenv("SEARCH_HISTORY_SIZE", "3"))

    # -- Concurrency -------------------------------------------------------------
    max_workers: int = int(os.getenv("MAX_WORKERS", "6"))

    # -- Logging -----------------------------------------------------------------
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the root logger at the configured level."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _parse_tz(name: str) -> dt.tzinfo:
    """Parse a timezone string into a :class:`datetime.tzinfo`.

    Supports:
    * IANA names  – ``Asia/Taipei``, ``US/Eastern``, ``UTC``
    * Offset form – ``UTC+8``, ``GMT+8``, ``UTC-5``, ``GMT-05:30``
    """
    m = _re.match(
        r"^(?:UTC|GMT)([+-])(\d{1,2})(?::(\d{2}))?$", name, _re.IGNORECASE
    )
    if m:
        sign = 1 if m.group(1) == "+" else -1
        hours = int(m.group(2))
        minutes = int(m.group(3) or 0)
        return dt.timezone(dt.timedelta(hours=sign * hours, minutes=sign * minutes))
    return ZoneInfo(name)


def get_today() -> dt.date:
    """Return today's date in the user-configured timezone."""
    tz = _parse_tz(get_settings().timezone)
    return dt.datetime.now(tz=tz).date()


def start_date(days_ago: int) -> str:
    """ISO date *days_ago* calendar days before today, as FinMind expects."""
    return (get_today() - dt.timedelta(days=days_ago)).isoformat()


def get_llm(settings: Settings | None = None) -> BaseChatModel:
    """Return a configured LLM instance.

    Returns the abstract ``BaseChatModel`` so callers never depend on
    a concrete provider.
    """
    s = settings or get_settings()
    return ChatOpenAI(
        model=s.openai_model,
        temperature=s.temperature,
        api_key=s.openai_api_key,  # type: ignore[arg-type]
    )
