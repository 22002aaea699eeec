"""Conversational search over a data catalog, driven by Claude tool use."""

__version__ = "0.1.0"
