"""memoir — a small persistent memory store served as agent tools."""

__version__ = "1.0.0"
