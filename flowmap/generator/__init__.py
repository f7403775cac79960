"""Natural-language process map generation."""
from flowmap.generator.map_generator import LLMResponseError, MapGenerator

__all__ = ["LLMResponseError", "MapGenerator"]
