"""
Data layer for the TW Stocks Dashboard.

Subpackages
-----------
services/   Domain services that orchestrate the FinMind client into typed models.

Top-level modules
-----------------
finmind.py  FinMind REST client and the cached stock directory.
metrics.py  Pure change/percentage and institutional-flow derivations.
models.py   Pydantic domain models.
"""
