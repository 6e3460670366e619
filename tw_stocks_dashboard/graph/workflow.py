"""
LangGraph workflow definition.

Resolves the user's query to a stock code, fetches the price snapshot,
fetches the institutional flow only once the snapshot has data, then hands
both to the analyst agent.

Dependency Inversion: the LLM is injected into ``build_graph`` and
closed over by the analyst node, so nodes never call ``get_llm()`` directly.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypedDict

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, START, StateGraph

from tw_stocks_dashboard.agents.analyst import AnalystAgent
from tw_stocks_dashboard.data.finmind import resolve_stock_id
from tw_stocks_dashboard.data.metrics import classify_trend
from tw_stocks_dashboard.data.models import AIAnalysis, InstitutionalFlow, StockSnapshot
from tw_stocks_dashboard.data.services.stock import (
    fetch_stock_institutional,
    fetch_stock_snapshot,
)

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "找不到該股票名稱或代號，請重新輸入"
NO_DATA_MESSAGE = "數據抓取失敗，請確認代號是否正確"

# ---------------------------------------------------------------------------
# State schema: one key per node output.
# ---------------------------------------------------------------------------


class GraphState(TypedDict, total=False):
    query: str
    stock_id: str
    error: Optional[str]
    snapshot: Optional[StockSnapshot]
    institutional: Optional[InstitutionalFlow]
    analysis: Optional[AIAnalysis]


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def _resolve(state: GraphState) -> GraphState:
    stock_id = resolve_stock_id(state["query"])
    if stock_id is None:
        logger.info("No stock matches query %r", state["query"])
        return {"error": NOT_FOUND_MESSAGE}
    return {"stock_id": stock_id}


def _stock_data(state: GraphState) -> GraphState:
    return {"snapshot": fetch_stock_snapshot(state["stock_id"])}


def _institutional(state: GraphState) -> GraphState:
    return {"institutional": fetch_stock_institutional(state["stock_id"])}


def _make_analyst_node(llm: BaseChatModel) -> Callable[[GraphState], GraphState]:
    """Return the analyst node; LLM errors propagate out of ``invoke``."""

    def _analyse(state: GraphState) -> GraphState:
        snapshot = state.get("snapshot")
        if snapshot is None or snapshot.error:
            return {"error": NO_DATA_MESSAGE}

        flow = state.get("institutional") or InstitutionalFlow()
        analysis = AnalystAgent(llm).run(snapshot, flow)
        enriched = snapshot.model_copy(
            update={"score": analysis.score, "trend": classify_trend(snapshot.pct)}
        )
        return {"analysis": analysis, "snapshot": enriched}

    return _analyse


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------


def build_graph(llm: BaseChatModel | None = None):
    """
    Build and compile the per-stock analysis graph.

    Topology:
        START ── resolve ── stock_data ── institutional ── analyst ── END

    ``resolve`` goes straight to END when the query matches nothing, and
    ``stock_data`` skips ``institutional`` when the snapshot has no data.
    """
    if llm is None:
        from tw_stocks_dashboard.infra.config import get_llm

        llm = get_llm()

    workflow = StateGraph(GraphState)
    workflow.add_node("resolve", _resolve)
    workflow.add_node("stock_data", _stock_data)
    workflow.add_node("institutional", _institutional)
    workflow.add_node("analyst", _make_analyst_node(llm))

    workflow.add_edge(START, "resolve")

    def _route_after_resolve(state: GraphState) -> str:
        return END if state.get("error") else "stock_data"

    def _route_after_snapshot(state: GraphState) -> str:
        snapshot = state.get("snapshot")
        if snapshot is None or snapshot.error:
            return "analyst"
        return "institutional"

    workflow.add_conditional_edges(
        "resolve", _route_after_resolve, path_map={"stock_data": "stock_data", END: END}
    )
    workflow.add_conditional_edges(
        "stock_data",
        _route_after_snapshot,
        path_map={"institutional": "institutional", "analyst": "analyst"},
    )
    workflow.add_edge("institutional", "analyst")
    workflow.add_edge("analyst", END)

    return workflow.compile()


def run_stock_analysis(query: str, llm: BaseChatModel | None = None) -> dict[str, Any]:
    """
    Resolve *query*, fetch its data and run the AI analysis.

    Parameters
    ----------
    query : str
        Stock code (``2330``) or full/partial Chinese name (``台積``).
    llm : BaseChatModel | None
        Optional LLM override.  Uses the default ``get_llm()`` when ``None``.

    Returns
    -------
    dict
        The final state: ``stock_id``, ``snapshot``, ``institutional`` and
        ``analysis`` on success, or ``error`` with a user-facing message.
        Exceptions raised by the LLM are not caught.
    """
    graph = build_graph(llm=llm)
    initial_state: GraphState = {"query": query.strip()}
    return graph.invoke(initial_state)
