"""HTTP API for TradeScope (FastAPI)."""
