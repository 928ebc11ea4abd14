"""Customer lifetime value analytics for e-commerce order exports."""

__version__ = "0.1.0"
