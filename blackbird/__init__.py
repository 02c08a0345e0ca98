"""Long/short bitcoin arbitrage engine with exchange-facing helpers."""

__version__ = "0.1.0"