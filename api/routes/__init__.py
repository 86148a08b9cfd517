"""API Routes"""

from . import design, health

__all__ = ["design", "health"]
