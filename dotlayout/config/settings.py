"""
Layout Tunables

This module collects the constants that couple the serializer, the engine
and the coordinate mapping. They are kept together because changing one
(e.g. the unit divisor) usually means revisiting another (the coordinate
scale that inverts it).

Usage:
    from dotlayout.config.settings import get_settings

    settings = get_settings()
    width_in_engine_units = width_px / settings.unit_divisor

Environment Variables:
    DOTLAYOUT_NODESEP=0.35          - Minimum horizontal gap between siblings
    DOTLAYOUT_UNIT_DIVISOR=100      - Pixels per engine size unit
    DOTLAYOUT_COORDINATE_SCALE=2    - Engine coordinates to display pixels
    DOTLAYOUT_VERTICAL_OFFSET=30    - Gap between viewport top and topmost node
    DOTLAYOUT_NODE_SHAPE=box        - Optional node shape (engine default if unset)
    DOTLAYOUT_DOT_PATH=/usr/bin/dot - Graphviz executable
    DOTLAYOUT_ENGINE_TIMEOUT=10     - Optional render timeout in seconds
"""

import os
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


# Defaults, overridable through the environment
DEFAULT_NODE_SEPARATION = 0.35
DEFAULT_UNIT_DIVISOR = 100.0
DEFAULT_COORDINATE_SCALE = 2.0
DEFAULT_VERTICAL_OFFSET = 30.0
DEFAULT_DOT_PATH = "dot"

ENV_VARS: Dict[str, str] = {
    "node_separation": "DOTLAYOUT_NODESEP",
    "unit_divisor": "DOTLAYOUT_UNIT_DIVISOR",
    "coordinate_scale": "DOTLAYOUT_COORDINATE_SCALE",
    "vertical_offset": "DOTLAYOUT_VERTICAL_OFFSET",
    "node_shape": "DOTLAYOUT_NODE_SHAPE",
    "dot_path": "DOTLAYOUT_DOT_PATH",
    "engine_timeout": "DOTLAYOUT_ENGINE_TIMEOUT",
}


class LayoutSettings(BaseModel):
    """Tunables shared by the serializer, the engine and the adapter.

    Attributes:
        node_separation: DOT ``nodesep`` between sibling nodes (inches)
        unit_divisor: Size hints are divided by this before serialization
        coordinate_scale: Engine coordinates are multiplied by this on the way back
        vertical_offset: Display y of the topmost node after normalization
        node_shape: DOT node shape; None keeps the engine default (ellipse)
        dot_path: Graphviz executable used by the Graphviz engine
        engine_timeout: Seconds before a render is abandoned; None waits forever
    """

    model_config = {"frozen": True}

    node_separation: float = Field(default=DEFAULT_NODE_SEPARATION, ge=0)
    unit_divisor: float = Field(default=DEFAULT_UNIT_DIVISOR, gt=0)
    coordinate_scale: float = Field(default=DEFAULT_COORDINATE_SCALE, gt=0)
    vertical_offset: float = Field(default=DEFAULT_VERTICAL_OFFSET)
    node_shape: Optional[str] = Field(default=None)
    dot_path: str = Field(default=DEFAULT_DOT_PATH, min_length=1)
    engine_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("node_shape")
    @classmethod
    def validate_node_shape(cls, v: Optional[str]) -> Optional[str]:
        """Shape names are plain DOT identifiers."""
        if v is not None and not v.isidentifier():
            raise ValueError(f"Invalid node shape: {v!r}")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "LayoutSettings":
        """Build settings from environment variable overrides.

        Args:
            environ: Mapping to read instead of ``os.environ`` (for tests)

        Returns:
            LayoutSettings with every variable that is set applied

        Example:
            >>> LayoutSettings.from_env({"DOTLAYOUT_VERTICAL_OFFSET": "10"}).vertical_offset
            10.0
        """
        env = os.environ if environ is None else environ
        overrides = {
            field: env[var]
            for field, var in ENV_VARS.items()
            if env.get(var, "").strip()
        }
        return cls(**overrides)


_settings: Optional[LayoutSettings] = None


def get_settings() -> LayoutSettings:
    """Get the process-wide default settings (read once from the environment)."""
    global _settings
    if _settings is None:
        _settings = LayoutSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment (for testing only)."""
    global _settings
    _settings = None
