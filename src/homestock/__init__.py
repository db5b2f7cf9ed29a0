"""HomeStock: household inventory tracking with low-stock and expiry alerts."""

__version__ = "0.1.0"
