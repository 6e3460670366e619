"""
Analyst agent – turns a stock snapshot and its institutional flow into a
structured AI analysis.

Uses ``BaseChatModel.with_structured_output()`` to enforce the
``AIAnalysis`` schema.  Falls back to a plain invocation with JSON
formatting instructions when the LLM does not support structured output.

Unlike the data services, failures here are not swallowed: they are
logged and re-raised so the caller can show its own error state.
"""

from __future__ import annotations

import json
import logging
import re

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from tw_stocks_dashboard.agents.prompts import (
    JSON_FORMAT_INSTRUCTIONS,
    STOCK_ANALYSIS_PROMPT,
)
from tw_stocks_dashboard.data.models import AIAnalysis, InstitutionalFlow, StockSnapshot
from tw_stocks_dashboard.infra.config import get_settings, get_today

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AnalysisError(Exception):
    """Raised when the model reply cannot be read as an ``AIAnalysis``."""


def build_prompt(snapshot: StockSnapshot, flow: InstitutionalFlow) -> str:
    """Render the analysis prompt for one stock."""
    bars = get_settings().analysis_history_bars
    recent = [
        {"date": bar.date, "close": bar.close, "vol": bar.volume}
        for bar in snapshot.history[-bars:]
    ]
    return STOCK_ANALYSIS_PROMPT.format(
        today=get_today().isoformat(),
        stock_id=snapshot.id,
        name=snapshot.name,
        price=snapshot.price,
        change=snapshot.change,
        pct=snapshot.pct,
        per=snapshot.per if snapshot.per else "N/A",
        pbr=snapshot.pbr if snapshot.pbr else "N/A",
        inst_date=flow.date or "N/A",
        foreign=flow.foreign,
        trust=flow.trust,
        dealer=flow.dealer,
        bars=len(recent),
        history=json.dumps(recent, ensure_ascii=False),
    )


def parse_analysis(text: str) -> AIAnalysis:
    """Parse a free-form model reply as an ``AIAnalysis`` JSON object."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return AIAnalysis.model_validate(json.loads(cleaned or "{}"))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise AnalysisError(f"Model reply is not a valid analysis: {exc}") from exc


class AnalystAgent:
    """Produces the AI commentary, score and forecast for one stock."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    def run(self, snapshot: StockSnapshot, flow: InstitutionalFlow) -> AIAnalysis:
        prompt = build_prompt(snapshot, flow)
        try:
            analysis = self._invoke_structured(prompt)
        except Exception as exc:
            logger.error("AI analysis failed for %s: %s", snapshot.id, exc)
            raise
        logger.info("AI analysis for %s scored %.0f", snapshot.id, analysis.score)
        return analysis

    # ------------------------------------------------------------------
    # Structured output (primary) → free-form + JSON parsing (fallback)
    # ------------------------------------------------------------------

    def _invoke_structured(self, prompt: str) -> AIAnalysis:
        try:
            structured_llm = self._llm.with_structured_output(AIAnalysis)
        except (NotImplementedError, AttributeError, TypeError) as exc:
            logger.info(
                "Structured output not supported (%s); falling back to JSON parsing.",
                exc,
            )
        else:
            result = structured_llm.invoke([HumanMessage(content=prompt)])
            if isinstance(result, dict):
                return AIAnalysis.model_validate(result)
            return result

        response = self._llm.invoke(
            [HumanMessage(content=prompt + JSON_FORMAT_INSTRUCTIONS)]
        )
        return parse_analysis(str(response.content))
