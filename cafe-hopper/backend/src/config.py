from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class Configuration(BaseModel):
    # Google Maps Places
    google_maps_api_key: Optional[str] = Field(default=None)
    google_maps_base_url: str = Field(default="https://maps.googleapis.com")
    google_maps_timeout: float = Field(default=10.0)

    # Supabase
    supabase_url: Optional[str] = Field(default=None)
    supabase_secret: Optional[str] = Field(default=None)
    supabase_timeout: float = Field(default=10.0)
    cafes_table: str = Field(default="cafes")

    # Search defaults
    default_query: str = Field(default="cafe")
    default_radius_m: int = Field(default=500)
    detail_concurrency: int = Field(default=5)
    restrict_to_radius: bool = Field(default=False)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "google_maps_api_key": os.getenv("GOOGLE_MAPS_API_KEY"),
            "google_maps_base_url": os.getenv("GOOGLE_MAPS_BASE_URL"),
            "google_maps_timeout": os.getenv("GOOGLE_MAPS_TIMEOUT"),
            "supabase_url": os.getenv("SUPABASE_URL"),
            "supabase_secret": os.getenv("SUPABASE_SECRET"),
            "supabase_timeout": os.getenv("SUPABASE_TIMEOUT"),
            "cafes_table": os.getenv("CAFES_TABLE"),
            "default_query": os.getenv("DEFAULT_QUERY"),
            "default_radius_m": os.getenv("DEFAULT_RADIUS_M"),
            "detail_concurrency": os.getenv("DETAIL_CONCURRENCY"),
            "restrict_to_radius": os.getenv("RESTRICT_TO_RADIUS"),
        }

        bool_fields = {"restrict_to_radius"}

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_google_maps(self) -> None:
        if not self.google_maps_api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY is required")

    def require_supabase(self) -> None:
        if not self.supabase_url or not self.supabase_secret:
            raise ValueError("SUPABASE_URL and SUPABASE_SECRET are required")

    def log_summary(self) -> str:
        return (
            "google_maps=%s base=%s timeout=%s api_key=%s supabase=%s table=%s "
            "default_query=%s default_radius_m=%s detail_concurrency=%s restrict_to_radius=%s"
            % (
                bool(self.google_maps_api_key),
                self.google_maps_base_url,
                self.google_maps_timeout,
                mask_secret(self.google_maps_api_key),
                self.supabase_url or "unset",
                self.cafes_table,
                self.default_query,
                self.default_radius_m,
                self.detail_concurrency,
                self.restrict_to_radius,
            )
        )
