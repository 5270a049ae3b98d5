# File: tradedesk/db/__init__.py
"""Persistence layer: models, engine and session management."""
