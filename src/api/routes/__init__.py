"""API route modules."""

from . import extraction, health

__all__ = ["extraction", "health"]
