"""Loyalty Panel: multi-tenant loyalty program administration backend."""

__version__ = "1.0.0"
