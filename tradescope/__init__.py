"""TradeScope — chart-analysis trading journal backend with an encrypted per-user key vault."""

__version__ = "0.1.0"
