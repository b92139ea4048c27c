"""GPSR Registry: versioned registry of product-safety compliance data."""

__version__ = "0.1.0"
