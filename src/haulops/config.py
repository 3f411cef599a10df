"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HAULOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "HaulOps Route Assignment API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for run artifacts.")
    active_assignment_statuses: tuple[str, ...] = Field(
        default=("pending", "assigned"),
        description="Assignment statuses that mark a house as already taken.",
    )
    committed_assignment_status: str = Field(
        default="assigned",
        description="Status written on assignments created by auto-assignment.",
    )
    sequence_strategy: Literal["greedy", "ortools"] = Field(
        default="greedy",
        description="Stop ordering: nearest-neighbour only, or nearest-neighbour refined by OR-Tools.",
    )
    solver_time_limit_seconds: int = Field(
        default=2,
        ge=0,
        description=(
            "Per-worker OR-Tools search budget. Workers are refined one after another, so a run can take up to "
            "this many seconds per worker. With a budget above 0 the time-limited search is not reproducible "
            "between runs; 0 uses a bounded greedy descent that is."
        ),
    )
    worker_name_cache_ttl_seconds: float = Field(default=300.0, ge=0.0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "active_assignment_statuses", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
