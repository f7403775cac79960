"""API route modules."""
from flowmap.api import generate, layout, maps

__all__ = ["generate", "layout", "maps"]
