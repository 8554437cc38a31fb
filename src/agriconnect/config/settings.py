# src/agriconnect/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/agriconnect/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `AGRICONNECT_STORE_PATH`, `GEMINI_API_KEY`)
- an external YAML file via `AGRICONNECT_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
  The notification fan-out radius is the one exception: it is a fixed policy constant
  in `agriconnect.matching.fanout`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from agriconnect.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `agriconnect.config`."""
    text = resources.files("agriconnect.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "AgriConnect"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/agriconnect"
    default_ttl_seconds: int = 60 * 60 * 24


class StoreSettings(BaseModel):
    backend: Literal["memory", "json"] = "memory"
    path: str = "data/agriconnect.json"


class FallbackCoordinate(BaseModel):
    """Used when signup or geocoding cannot produce coordinates (center of India)."""

    lat: float = Field(20.5937, ge=-90, le=90)
    lng: float = Field(78.9629, ge=-180, le=180)


class DiscoverySettings(BaseModel):
    default_radius_km: float = Field(10, ge=0)
    fallback_coordinate: FallbackCoordinate = Field(default_factory=FallbackCoordinate)


class PollingSettings(BaseModel):
    discovery_interval_seconds: float = Field(5, gt=0)
    notifications_interval_seconds: float = Field(10, gt=0)


class GeocodingSettings(BaseModel):
    enabled: bool = True
    base_url: str = "https://nominatim.openstreetmap.org"
    max_requests_per_minute: float = Field(60, gt=0)
    cache_ttl_seconds: int = 60 * 60 * 24 * 7


class ContentSettings(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    text_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-2.5-flash-image"
    fallback_image_uri: str = (
        "https://images.unsplash.com/photo-1592601249767-a2f0a82753a6?q=80&w=600&auto=format&fit=crop"
    )
    api_key: str | None = None


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    content: ContentSettings = Field(default_factory=ContentSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Only the variables below are read; everything else comes from YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("AGRICONNECT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    cache_dir = os.getenv("AGRICONNECT_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    store_backend = os.getenv("AGRICONNECT_STORE_BACKEND")
    if store_backend:
        data.setdefault("store", {})["backend"] = store_backend
    store_path = os.getenv("AGRICONNECT_STORE_PATH")
    if store_path:
        data.setdefault("store", {})["path"] = store_path

    api_key = os.getenv("GEMINI_API_KEY")
    if api_key:
        data.setdefault("content", {})["api_key"] = api_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("AGRICONNECT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
