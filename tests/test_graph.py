"""
Tests for the LangGraph workflow construction.

These tests verify graph structure and node wiring, then run the full
graph with the data services and the LLM mocked.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

import tw_stocks_dashboard.graph.workflow as workflow_mod
from tests.conftest import make_structured_mock_llm
from tw_stocks_dashboard.data.models import FetchStatus, InstitutionalFlow, StockSnapshot, Trend
from tw_stocks_dashboard.graph.workflow import (
    NO_DATA_MESSAGE,
    NOT_FOUND_MESSAGE,
    build_graph,
    run_stock_analysis,
)


class TestBuildGraph:
    def test_graph_compiles(self):
        graph = build_graph(llm=MagicMock())
        assert graph is not None

    def test_graph_has_expected_nodes(self):
        graph = build_graph(llm=MagicMock())
        node_names = set(graph.get_graph().nodes.keys())
        assert {"resolve", "stock_data", "institutional", "analyst"}.issubset(node_names)


class TestRunStockAnalysis:
    def test_full_pipeline(self, sample_snapshot, sample_flow, sample_analysis):
        llm = make_structured_mock_llm(sample_analysis)
        with (
            patch.object(workflow_mod, "resolve_stock_id", return_value="2330") as mock_resolve,
            patch.object(workflow_mod, "fetch_stock_snapshot", return_value=sample_snapshot),
            patch.object(workflow_mod, "fetch_stock_institutional", return_value=sample_flow) as mock_inst,
        ):
            result = run_stock_analysis(" 台積 ", llm=llm)

        mock_inst.assert_called_once_with("2330")
        mock_resolve.assert_called_once_with("台積")
        assert result.get("error") is None
        assert result["stock_id"] == "2330"
        assert result["analysis"].score == 82
        assert result["institutional"].total == 7_700

        snapshot = result["snapshot"]
        assert snapshot.score == 82
        assert snapshot.trend == Trend.BULLISH
        assert snapshot.price == 1050.0

    def test_nodata_institutional_still_analysed(self, sample_snapshot, sample_analysis):
        llm = make_structured_mock_llm(sample_analysis)
        with (
            patch.object(workflow_mod, "resolve_stock_id", return_value="2330"),
            patch.object(workflow_mod, "fetch_stock_snapshot", return_value=sample_snapshot),
            patch.object(
                workflow_mod,
                "fetch_stock_institutional",
                return_value=InstitutionalFlow(status=FetchStatus.NO_DATA),
            ),
        ):
            result = run_stock_analysis("2330", llm=llm)

        assert result["analysis"] is not None
        assert result["institutional"].status == FetchStatus.NO_DATA


class TestFailures:
    def test_unresolved_query_short_circuits(self):
        llm = MagicMock()
        with (
            patch.object(workflow_mod, "resolve_stock_id", return_value=None),
            patch.object(workflow_mod, "fetch_stock_snapshot") as mock_snap,
        ):
            result = run_stock_analysis("不存在", llm=llm)

        assert result["error"] == NOT_FOUND_MESSAGE
        assert result.get("snapshot") is None
        mock_snap.assert_not_called()

    def test_errored_snapshot_skips_llm(self, sample_flow):
        llm = MagicMock()
        with (
            patch.object(workflow_mod, "resolve_stock_id", return_value="9999"),
            patch.object(
                workflow_mod,
                "fetch_stock_snapshot",
                return_value=StockSnapshot(id="9999", error=True),
            ),
            patch.object(workflow_mod, "fetch_stock_institutional", return_value=sample_flow) as mock_inst,
        ):
            result = run_stock_analysis("9999", llm=llm)

        assert result["error"] == NO_DATA_MESSAGE
        assert result.get("analysis") is None
        llm.with_structured_output.assert_not_called()
        mock_inst.assert_not_called()

    def test_llm_failure_propagates(self, sample_snapshot, sample_flow):
        llm = make_structured_mock_llm(None)
        llm.with_structured_output.return_value.invoke.side_effect = RuntimeError("quota")
        with (
            patch.object(workflow_mod, "resolve_stock_id", return_value="2330"),
            patch.object(workflow_mod, "fetch_stock_snapshot", return_value=sample_snapshot),
            patch.object(workflow_mod, "fetch_stock_institutional", return_value=sample_flow),
            pytest.raises(RuntimeError, match="quota"),
        ):
            run_stock_analysis("2330", llm=llm)
