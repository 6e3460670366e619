"""Taiwan equity dashboard backend: FinMind data aggregation and AI commentary."""
