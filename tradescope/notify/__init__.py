"""Notifications attached to journal actions."""

from tradescope.notify.email import EmailResult, TradeSession, format_trade_email, send_trade_email

__all__ = ["EmailResult", "TradeSession", "format_trade_email", "send_trade_email"]
