"""
Flask application factory and CLI entry point.

Single Responsibility: this module only handles HTTP routing and
request/response logic.  Data aggregation lives in ``data.services`` and
the AI analysis in ``graph.workflow``; the browser dashboard consumes the
JSON returned here.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from tw_stocks_dashboard.data.finmind import resolve_stock_id
from tw_stocks_dashboard.data.metrics import score_label
from tw_stocks_dashboard.data.models import StockReport
from tw_stocks_dashboard.data.services.chart import chart_points
from tw_stocks_dashboard.data.services.market import load_market_overview
from tw_stocks_dashboard.data.services.stock import fetch_stock_snapshot
from tw_stocks_dashboard.graph.workflow import NOT_FOUND_MESSAGE, run_stock_analysis
from tw_stocks_dashboard.infra.config import configure_logging, get_settings
from tw_stocks_dashboard.web.history import SearchHistory

logger = logging.getLogger(__name__)

AI_ERROR_MESSAGE = "AI 分析發生錯誤，請稍後再試"


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def create_app(llm=None) -> Flask:
    """Application factory — returns a configured Flask instance.

    *llm* overrides the chat model used for analysis (tests pass a mock).
    """
    settings = get_settings()
    app = Flask(__name__)
    app.json.ensure_ascii = False  # type: ignore[attr-defined]

    history = SearchHistory(size=settings.search_history_size)
    app.extensions["search_history"] = history

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    @app.route("/api/market")
    def market():
        """Index, market-wide fund flow and the hot-stock watchlist."""
        overview = load_market_overview()
        return jsonify(_dump(overview))

    @app.route("/api/resolve")
    def resolve():
        query = (request.args.get("q") or "").strip()
        if not query:
            return jsonify({"error": "Query is required"}), 400

        stock_id = resolve_stock_id(query)
        if stock_id is None:
            return jsonify({"error": NOT_FOUND_MESSAGE}), 404
        return jsonify({"query": query, "stock_id": stock_id})

    @app.route("/api/stocks/<stock_id>")
    def stock(stock_id: str):
        """Snapshot and chart points for one stock, without AI analysis."""
        snapshot = fetch_stock_snapshot(stock_id)
        if snapshot.error:
            return jsonify({"error": "No data", "id": stock_id}), 404
        return jsonify({
            "snapshot": _dump(snapshot),
            "chart": [_dump(p) for p in chart_points(snapshot)],
        })

    @app.route("/api/analyse", methods=["POST"])
    def analyse():
        """Resolve the query, fetch its data and run the AI analysis."""
        payload = request.get_json(silent=True) or {}
        query = (request.form.get("query") or payload.get("query") or "").strip()
        if not query:
            return jsonify({"error": "Query is required"}), 400

        try:
            state = run_stock_analysis(query, llm=llm)
        except Exception:
            logger.exception("Analysis failed for query %r", query)
            return jsonify({"error": AI_ERROR_MESSAGE}), 502

        error = state.get("error")
        if error:
            status = 404 if error == NOT_FOUND_MESSAGE else 502
            return jsonify({"error": error}), status

        snapshot = state["snapshot"]
        report = StockReport(
            snapshot=snapshot,
            institutional=state["institutional"],
            analysis=state["analysis"],
            chart=chart_points(snapshot),
        )
        history.add(snapshot)

        body = _dump(report)
        body["rating"] = score_label(report.analysis.score)
        return jsonify(body)

    @app.route("/api/history")
    def recent():
        return jsonify([_dump(s) for s in history.items()])

    return app


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the Flask development server."""
    import argparse

    parser = argparse.ArgumentParser(description="TW Stocks Dashboard API")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    configure_logging()
    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
