"""Hierarchical layout of clustered directed graphs through Graphviz dot.

Usage:
    from dotlayout import NetworkXSurface

    surface = NetworkXSurface.from_elements(elements)
    result = surface.layout({"name": "dot"}).run_sync()
"""

from dotlayout.config.settings import LayoutSettings, get_settings
from dotlayout.models import GraphEdge, GraphNode, LayoutResult, NodePosition, Selection, SizeHint
from dotlayout.layout import (
    ConsistencyError,
    DotLayout,
    DotLayoutOptions,
    EngineError,
    GraphvizEngine,
    LayoutCycle,
    LayoutError,
    LayoutState,
    SerializationError,
    build_description,
    serialize,
)
from dotlayout.core import NetworkXSurface, RenderingSurface

__version__ = "0.1.0"

__all__ = [
    "LayoutSettings",
    "get_settings",
    "GraphNode",
    "GraphEdge",
    "Selection",
    "SizeHint",
    "NodePosition",
    "LayoutResult",
    "LayoutError",
    "SerializationError",
    "EngineError",
    "ConsistencyError",
    "build_description",
    "serialize",
    "GraphvizEngine",
    "DotLayout",
    "DotLayoutOptions",
    "LayoutCycle",
    "LayoutState",
    "RenderingSurface",
    "NetworkXSurface",
]
