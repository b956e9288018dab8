"""Layout module for hierarchical graph positioning.

This module provides:
- Graph serializer (selection -> DOT)
- Layout engine abstraction (LayoutEngine) and the Graphviz engine
- The dot layout adapter and its per-run layout cycles
- A registry of named layouts
"""

from dotlayout.layout.errors import (
    ConsistencyError,
    EngineError,
    LayoutError,
    SerializationError,
)
from dotlayout.layout.registry import LAYOUTS, get_layout, register_layout
from dotlayout.layout.serializer import LayoutDescription, build_description, serialize
from dotlayout.layout.engines import GraphvizEngine, LayoutEngine, RenderResult
from dotlayout.layout.adapter import DotLayout, DotLayoutOptions, LayoutCycle, LayoutState

__all__ = [
    "LayoutError",
    "SerializationError",
    "EngineError",
    "ConsistencyError",
    "LAYOUTS",
    "get_layout",
    "register_layout",
    "LayoutDescription",
    "build_description",
    "serialize",
    "LayoutEngine",
    "RenderResult",
    "GraphvizEngine",
    "DotLayout",
    "DotLayoutOptions",
    "LayoutCycle",
    "LayoutState",
]
