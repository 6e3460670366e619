"""
CLI entry point for the TW Stocks Dashboard.

Usage:
    tw-dashboard 2330
    tw-dashboard 台積電 聯發科          # analyse multiple stocks
    tw-dashboard 2330 --no-ai           # snapshot and institutional flow only
    tw-dashboard 2330 --json            # machine-readable output
    tw-dashboard --market               # TAIEX, fund flow and hot stocks
"""

from __future__ import annotations

import argparse
import json
import sys

from tw_stocks_dashboard.data.finmind import resolve_stock_id
from tw_stocks_dashboard.data.metrics import score_label
from tw_stocks_dashboard.data.models import (
    AIAnalysis,
    FetchStatus,
    InstitutionalFlow,
    MarketOverview,
    StockSnapshot,
)
from tw_stocks_dashboard.data.services.market import load_market_overview
from tw_stocks_dashboard.data.services.stock import (
    fetch_stock_institutional,
    fetch_stock_snapshot,
)
from tw_stocks_dashboard.graph.workflow import NO_DATA_MESSAGE, NOT_FOUND_MESSAGE, run_stock_analysis
from tw_stocks_dashboard.infra.config import configure_logging

BORDER = "=" * 60


def _signed(value: float) -> str:
    return f"+{value}" if value >= 0 else f"{value}"


def _print_market(overview: MarketOverview) -> None:
    idx = overview.index
    flow = overview.fund_flow
    print(f"\n{BORDER}")
    print("  台股大盤 TAIEX")
    print(BORDER)
    if idx.status == FetchStatus.SUCCESS:
        print(f"  {idx.price:,.2f}  {_signed(idx.change)} ({idx.pct}%)  成交 {idx.volume} 億  [{idx.date}]")
    else:
        print(f"  指數資料無法取得 ({idx.status.value})")
    if flow.status == FetchStatus.SUCCESS:
        print(f"  三大法人合計 {_signed(flow.total)} 億 ({flow.direction})  [{flow.date}]")
    else:
        print(f"  法人資料無法取得 ({flow.status.value})")
    print("\n  熱門股")
    for s in overview.hot_stocks:
        print(f"  {s.id:<6} {s.name:<8} {s.price:>10,.2f}  {_signed(s.change)} ({s.pct}%)")
    print(f"{BORDER}\n")


def _print_snapshot(snapshot: StockSnapshot, flow: InstitutionalFlow) -> None:
    print(f"\n{BORDER}")
    print(f"  {snapshot.id} {snapshot.name}  [{snapshot.last_update}]")
    print(BORDER)
    print(f"  價格 {snapshot.price:,.2f}  {_signed(snapshot.change)} ({snapshot.pct}%)")
    print(f"  成交量 {snapshot.volume:,}  PER {snapshot.per or 'N/A'}  PBR {snapshot.pbr or 'N/A'}")
    if flow.status == FetchStatus.SUCCESS:
        print(
            f"  法人 [{flow.date}] 外資 {flow.foreign:,}  投信 {flow.trust:,}  "
            f"自營商 {flow.dealer:,}  合計 {flow.total:,}"
        )


def _print_analysis(analysis: AIAnalysis) -> None:
    print(f"\n  AI 綜合評分: {analysis.score:.0f} ({score_label(analysis.score)})")
    print(f"\n  【技術面】{analysis.summary}")
    print(f"\n  【財務面】{analysis.financial}")
    print(f"\n  【籌碼面】{analysis.institutional}")
    if analysis.prediction.days:
        print("\n  【未來走勢預測】")
        for day in analysis.prediction.days:
            print(f"  {day.date}  {day.price:,.2f}  ({day.low:,.2f} - {day.high:,.2f})")
    if analysis.brokerages:
        print("\n  【主力券商】")
        for b in analysis.brokerages:
            print(f"  {b.name}  {b.side.value} {b.amount:,.0f}")
    print(f"{BORDER}\n")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Taiwan stock dashboard with AI commentary",
    )
    parser.add_argument(
        "queries", nargs="*",
        help="Stock codes or names (e.g. 2330 台積電 聯發科)",
    )
    parser.add_argument(
        "--market", action="store_true",
        help="Show TAIEX, market fund flow and the hot-stock list",
    )
    parser.add_argument(
        "--no-ai", action="store_true",
        help="Skip the AI analysis; print snapshot and institutional flow only",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print JSON instead of formatted text",
    )
    args = parser.parse_args(argv)
    if not args.queries and not args.market:
        parser.error("give at least one stock query or --market")
    return args


def _snapshot_only(query: str, as_json: bool) -> bool:
    stock_id = resolve_stock_id(query)
    if stock_id is None:
        print(f"❌ {query}: {NOT_FOUND_MESSAGE}")
        return False
    snapshot = fetch_stock_snapshot(stock_id)
    if snapshot.error:
        print(f"❌ {query}: {NO_DATA_MESSAGE}")
        return False
    flow = fetch_stock_institutional(stock_id)
    if as_json:
        print(json.dumps(
            {"snapshot": snapshot.model_dump(mode="json", exclude={"history"}),
             "institutional": flow.model_dump(mode="json")},
            ensure_ascii=False, indent=2,
        ))
    else:
        _print_snapshot(snapshot, flow)
        print(f"{BORDER}\n")
    return True


def _analyse_single(query: str, as_json: bool) -> bool:
    """Run the full analysis for one query. Returns True on success."""
    print(f"\n🔍 分析 {query} 中 …\n", file=sys.stderr)
    try:
        state = run_stock_analysis(query)
    except KeyboardInterrupt:
        print("\n⚠️  Analysis interrupted by user.")
        sys.exit(130)
    except Exception as exc:
        print(f"❌ AI 分析發生錯誤，請稍後再試 ({type(exc).__name__}: {exc})")
        return False

    error = state.get("error")
    if error:
        print(f"❌ {query}: {error}")
        return False

    snapshot: StockSnapshot = state["snapshot"]
    flow: InstitutionalFlow = state["institutional"]
    analysis: AIAnalysis = state["analysis"]

    if as_json:
        print(json.dumps(
            {"snapshot": snapshot.model_dump(mode="json", exclude={"history"}),
             "institutional": flow.model_dump(mode="json"),
             "analysis": analysis.model_dump(mode="json", by_alias=True)},
            ensure_ascii=False, indent=2,
        ))
    else:
        _print_snapshot(snapshot, flow)
        _print_analysis(analysis)
    return True


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging()

    if args.market:
        overview = load_market_overview()
        if args.json:
            print(json.dumps(overview.model_dump(mode="json"), ensure_ascii=False, indent=2))
        else:
            _print_market(overview)

    failures: list[str] = []
    for query in args.queries:
        run = _snapshot_only if args.no_ai else _analyse_single
        if not run(query, args.json):
            failures.append(query)

    if len(args.queries) > 1:
        out = sys.stderr if args.json else sys.stdout
        print(f"\n  Completed {len(args.queries) - len(failures)}/{len(args.queries)} queries.", file=out)
        if failures:
            print(f"  Failed: {', '.join(failures)}", file=out)

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
