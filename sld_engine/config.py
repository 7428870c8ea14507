"""
Engine Configuration
====================

Settings for the diagram editing engine and its HTTP service.
Defaults can be overridden through environment variables.
"""

import os
import logging
from typing import Optional
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    """Configuration for the SLD editing engine."""
    history_depth: int = Field(default=50, ge=1)
    min_zoom: float = Field(default=0.1, gt=0)
    max_zoom: float = Field(default=10.0, gt=0)
    zoom_step: float = Field(default=1.2, gt=1.0)
    grid_size: int = Field(default=20, gt=0)
    grid_enabled: bool = True
    snap_to_grid: bool = True
    sessions_dir: str = "sessions"
    catalog_api_url: Optional[str] = None
    calculation_api_url: Optional[str] = None
    http_timeout: float = 30.0
    log_level: str = "INFO"


# Environment variable -> config field
ENV_OVERRIDES = {
    "SLD_HISTORY_DEPTH": "history_depth",
    "SLD_MIN_ZOOM": "min_zoom",
    "SLD_MAX_ZOOM": "max_zoom",
    "SLD_ZOOM_STEP": "zoom_step",
    "SLD_GRID_SIZE": "grid_size",
    "SLD_GRID_ENABLED": "grid_enabled",
    "SLD_SNAP_TO_GRID": "snap_to_grid",
    "SLD_SESSIONS_DIR": "sessions_dir",
    "CATALOG_API_URL": "catalog_api_url",
    "CALCULATION_API_URL": "calculation_api_url",
    "SLD_HTTP_TIMEOUT": "http_timeout",
    "SLD_LOG_LEVEL": "log_level",
}


def load_config(**overrides) -> EngineConfig:
    """
    Build the engine configuration.

    Values are taken from the environment first, then from explicit keyword
    overrides. Pydantic coerces the raw strings to the field types.
    """
    values = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw
    values.update(overrides)

    config = EngineConfig(**values)
    if config.min_zoom > config.max_zoom:
        raise ValueError(f"min_zoom ({config.min_zoom}) exceeds max_zoom ({config.max_zoom})")

    logger.debug(f"[CONFIG] Loaded {config.model_dump()}")
    return config
