"""API routers module."""

from . import similarity

__all__ = ["similarity"]
