"""hookwarden - git lifecycle hook execution engine."""

__version__ = "0.4.0"

__all__ = ["__version__"]
