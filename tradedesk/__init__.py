# File: tradedesk/__init__.py
"""TradeDesk back-office: stock ledger and estimate-to-job conversion."""

__version__ = "0.1.0"
