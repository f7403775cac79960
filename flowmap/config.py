"""Application configuration using Pydantic Settings."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App settings
    app_name: str = "Flowmap Process Mapper"
    debug: bool = False

    # LLM Configuration
    llm_provider: Literal["anthropic", "openai"] = "anthropic"
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Default models
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o"
    llm_max_tokens: int = 8192
    llm_temperature: float = 0.2

    # Supabase Configuration
    supabase_url: str = ""
    supabase_service_key: str = ""
    maps_table: str = "maps"

    # ==========================================================================
    # LAYOUT DEFAULTS
    # Used when a layout request carries no explicit parameters
    # ==========================================================================
    layout_center_x: float = 300
    layout_vertical_gap: float = 60
    layout_branch_offset: float = 200
    layout_subgraph_gap: float = 150
    layout_loop_back: Literal["positional", "topological"] = "positional"
    layout_leveling: Literal["longest_path", "first_visit"] = "longest_path"

    # ==========================================================================
    # STREAM CLIENT
    # Where the reconciliation client posts generation requests
    # ==========================================================================
    stream_base_url: str = "http://localhost:8000"
    stream_timeout: float = 120.0

    def layout_defaults(self) -> dict:
        """Layout parameters as keyword arguments for LayoutParams."""
        return {
            "center_x": self.layout_center_x,
            "vertical_gap": self.layout_vertical_gap,
            "branch_offset": self.layout_branch_offset,
            "subgraph_gap": self.layout_subgraph_gap,
            "loop_back": self.layout_loop_back,
            "leveling": self.layout_leveling,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
