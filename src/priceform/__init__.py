"""priceform -- a safe pricing formula engine."""

__version__ = "0.1.0"
