"""
Domain services that turn FinMind rows into typed dashboard models.

market.py   TAIEX, market-wide institutional flow, hot-stock watchlist.
stock.py    Per-stock snapshot and institutional flow.
chart.py    Chart points derived from a snapshot's history.
"""
