"""API route handlers."""

from api.routes import batches, health

__all__ = ["batches", "health"]
