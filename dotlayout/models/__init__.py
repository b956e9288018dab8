"""Data models for layout input (selections) and output (positions)."""

from dotlayout.models.graph_elements import GraphEdge, GraphNode, Selection, SizeHint
from dotlayout.models.layout_metadata import BoundingBox, LayoutResult, NodePosition

__all__ = [
    "GraphNode",
    "GraphEdge",
    "Selection",
    "SizeHint",
    "NodePosition",
    "BoundingBox",
    "LayoutResult",
]
